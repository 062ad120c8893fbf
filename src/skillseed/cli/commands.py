"""CLI commands for skillseed.

Commands:
- seed: reconcile the database toward the skill trees in the content dir
- validate: load and validate skill trees without touching the database
- list: list seeded skill trees
- status: per-domain active/retired counts for one tree
"""

import sqlite3
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from skillseed.config.app_config import load_app_config
from skillseed.core.loader import (
    ContentLoadError,
    load_skill_tree,
    resolve_skill_tree_dirs,
)
from skillseed.core.seeder import seed_skill_tree, update_templates_for_skill_tree
from skillseed.core.validator import SkillTreeValidationError
from skillseed.db.database import get_db, init_db
from skillseed.db.skilltree_repository import (
    get_skilltree,
    list_domains,
    list_nodes,
    list_skilltrees,
    list_topics,
)

app = typer.Typer(
    name="skillseed",
    help="Seed skill tree content (domains, topics, nodes) into the database.",
    no_args_is_help=True,
)

console = Console()


def _resolve_paths(content_dir: Path | None, db: Path | None) -> tuple[Path, Path]:
    """Fill in content dir and database path from config when not given."""
    config = load_app_config()
    return (content_dir or config.content.dir, db or config.database.path)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(code=1)


@app.command()
def seed(
    skilltree: str | None = typer.Option(
        None, "--skilltree", "-s", help="Only seed this skill tree (directory name)"
    ),
    update_templates: bool = typer.Option(
        False, "--update-templates", help="Only backfill new question template types"
    ),
    content_dir: Path | None = typer.Option(None, "--content-dir", help="Content directory"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database file"),
) -> None:
    """Seed the database from skill tree content."""
    content_path, db_path = _resolve_paths(content_dir, db)

    try:
        tree_dirs = resolve_skill_tree_dirs(content_path, skilltree)
        trees = [load_skill_tree(d) for d in tree_dirs]
    except (ContentLoadError, SkillTreeValidationError) as e:
        _fail(str(e))

    if not trees:
        console.print(f"[yellow]⚠ No skill trees found in {content_path}[/yellow]")
        return

    init_db(db_path)

    try:
        with get_db(autocommit=True) as conn:
            for tree in trees:
                if update_templates:
                    update_templates_for_skill_tree(conn, tree)
                    console.print(f"[green]✓ Templates updated:[/green] {tree.name}")
                else:
                    seed_skill_tree(conn, tree)
                    console.print(f"[green]✓ Seeded:[/green] {tree.name}")
    except sqlite3.Error as e:
        _fail(f"Seeding failed: {e}")

    console.print("[green]Seeding complete![/green]")


@app.command()
def validate(
    skilltree: str | None = typer.Option(
        None, "--skilltree", "-s", help="Only validate this skill tree"
    ),
    content_dir: Path | None = typer.Option(None, "--content-dir", help="Content directory"),
) -> None:
    """Load and validate skill tree content."""
    content_path, _ = _resolve_paths(content_dir, None)

    try:
        tree_dirs = resolve_skill_tree_dirs(content_path, skilltree)
    except ContentLoadError as e:
        _fail(str(e))

    failures = 0
    for tree_dir in tree_dirs:
        try:
            tree = load_skill_tree(tree_dir)
        except (ContentLoadError, SkillTreeValidationError) as e:
            console.print(f"[red]✗ {tree_dir.name}: {e}[/red]")
            failures += 1
            continue

        nodes = sum(len(entry.nodes) for entry in tree.domains)
        console.print(
            f"[green]✓ {tree_dir.name}[/green] "
            f"[dim]({len(tree.domains)} domains, {nodes} nodes, "
            f"{len(tree.placeholder_domains)} placeholders)[/dim]"
        )

    if failures:
        raise typer.Exit(code=1)


@app.command(name="list")
def list_trees(
    db: Path | None = typer.Option(None, "--db", help="SQLite database file"),
) -> None:
    """List seeded skill trees."""
    _, db_path = _resolve_paths(None, db)
    init_db(db_path)

    with get_db() as conn:
        trees = list_skilltrees(conn)

        if not trees:
            console.print("[yellow]No skill trees seeded[/yellow]")
            console.print("  Use: skillseed seed")
            return

        console.print(f"\n[bold]Skill trees ({len(trees)}):[/bold]\n")
        for tree in trees:
            domains = list_domains(conn, tree.id)
            topics = sum(len(list_topics(conn, d.id, active_only=True)) for d in domains)
            nodes = sum(len(list_nodes(conn, d.id, active_only=True)) for d in domains)
            console.print(f"  [bold]{tree.id}[/bold]")
            console.print(f"    [dim]name:[/dim]    {tree.name}")
            console.print(f"    [dim]domains:[/dim] {len(domains)}")
            console.print(f"    [dim]active:[/dim]  {topics} topics, {nodes} nodes")
            console.print()


@app.command()
def status(
    skilltree: str = typer.Argument(..., help="Skill tree id"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database file"),
) -> None:
    """Show active and retired topic/node counts per domain."""
    _, db_path = _resolve_paths(None, db)
    init_db(db_path)

    with get_db() as conn:
        tree = get_skilltree(conn, skilltree)
        if tree is None:
            _fail(f"Skill tree not found: {skilltree}")

        console.print(f"\n[bold]{tree.name}[/bold] [dim]({tree.id})[/dim]\n")
        for domain in list_domains(conn, tree.id):
            topics = list_topics(conn, domain.id)
            nodes = list_nodes(conn, domain.id)
            active_topics = sum(1 for t in topics if not t.is_retired)
            active_nodes = sum(1 for n in nodes if not n.is_retired)

            console.print(f"  [bold]{domain.name}[/bold] [dim]tier {domain.tier}[/dim]")
            if not topics:
                console.print("    [dim]placeholder[/dim]")
            else:
                console.print(
                    f"    [dim]topics:[/dim] {active_topics} active, "
                    f"{len(topics) - active_topics} retired"
                )
                console.print(
                    f"    [dim]nodes:[/dim]  {active_nodes} active, "
                    f"{len(nodes) - active_nodes} retired"
                )
            if domain.prerequisites:
                console.print(f"    [dim]requires:[/dim] {', '.join(domain.prerequisites)}")


if __name__ == "__main__":
    app()
