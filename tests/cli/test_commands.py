"""Tests for the skillseed CLI commands."""

import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

from skillseed.cli.commands import app
from skillseed.db.database import get_db, init_db
from skillseed.db.skilltree_repository import get_domain, list_nodes

SAMPLE_CONTENT = Path(__file__).resolve().parents[2] / "content"

runner = CliRunner()


@pytest.fixture
def content_dir(tmp_path) -> Path:
    """Copy of the bundled sample content."""
    target = tmp_path / "content"
    shutil.copytree(SAMPLE_CONTENT, target)
    return target


@pytest.fixture
def db_file(tmp_path) -> Path:
    return tmp_path / "db" / "cli.db"


def _seed(content_dir, db_file, *extra):
    return runner.invoke(
        app, ["seed", "--content-dir", str(content_dir), "--db", str(db_file), *extra]
    )


class TestSeedCommand:
    """Tests for skillseed seed."""

    def test_seed_all_trees(self, content_dir, db_file):
        result = _seed(content_dir, db_file)

        assert result.exit_code == 0
        assert "Seeding complete!" in result.stdout

        init_db(db_file)
        with get_db() as conn:
            domain = get_domain(conn, "networking", "Networking Fundamentals")
            assert domain is not None
            assert len(list_nodes(conn, domain.id)) == 3
            assert get_domain(conn, "networking", "Core Protocols").prerequisites == [
                "Networking Fundamentals"
            ]
            assert get_domain(conn, "networking", "Wireless Networks") is not None

    def test_seed_twice_succeeds(self, content_dir, db_file):
        assert _seed(content_dir, db_file).exit_code == 0
        assert _seed(content_dir, db_file).exit_code == 0

    def test_seed_single_tree(self, content_dir, db_file):
        result = _seed(content_dir, db_file, "--skilltree", "networking")

        assert result.exit_code == 0
        assert "Networking" in result.stdout

    def test_unknown_skilltree_fails(self, content_dir, db_file):
        result = _seed(content_dir, db_file, "-s", "cooking")

        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_update_templates_mode(self, content_dir, db_file):
        _seed(content_dir, db_file)

        result = _seed(content_dir, db_file, "--update-templates")

        assert result.exit_code == 0
        assert "Templates updated" in result.stdout

    def test_invalid_content_fails_without_writing(self, content_dir, db_file):
        domain_file = content_dir / "networking" / "domains" / "protocols.yaml"
        domain_file.write_text(domain_file.read_text().replace("type: recognition", "type: essay"))

        result = _seed(content_dir, db_file)

        assert result.exit_code == 1
        assert not db_file.exists()

    def test_empty_content_dir(self, tmp_path, db_file):
        empty = tmp_path / "empty"
        empty.mkdir()

        result = _seed(empty, db_file)

        assert result.exit_code == 0
        assert "No skill trees found" in result.stdout


class TestValidateCommand:
    """Tests for skillseed validate."""

    def test_valid_content(self, content_dir):
        result = runner.invoke(app, ["validate", "--content-dir", str(content_dir)])

        assert result.exit_code == 0
        assert "networking" in result.stdout

    def test_broken_tree_exits_nonzero(self, content_dir):
        (content_dir / "networking" / "domains" / "fundamentals.yaml").unlink()

        result = runner.invoke(app, ["validate", "--content-dir", str(content_dir)])

        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_missing_content_dir(self, tmp_path):
        result = runner.invoke(app, ["validate", "--content-dir", str(tmp_path / "nope")])

        assert result.exit_code == 1


class TestListAndStatus:
    """Tests for skillseed list and skillseed status."""

    def test_list_empty(self, db_file):
        result = runner.invoke(app, ["list", "--db", str(db_file)])

        assert result.exit_code == 0
        assert "No skill trees seeded" in result.stdout

    def test_list_after_seed(self, content_dir, db_file):
        _seed(content_dir, db_file)

        result = runner.invoke(app, ["list", "--db", str(db_file)])

        assert result.exit_code == 0
        assert "networking" in result.stdout
        assert "4 topics, 5 nodes" in result.stdout

    def test_status_shows_domains(self, content_dir, db_file):
        _seed(content_dir, db_file)

        result = runner.invoke(app, ["status", "networking", "--db", str(db_file)])

        assert result.exit_code == 0
        assert "Core Protocols" in result.stdout
        assert "placeholder" in result.stdout
        assert "requires:" in result.stdout

    def test_status_unknown_tree(self, db_file):
        result = runner.invoke(app, ["status", "missing", "--db", str(db_file)])

        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestMalformedContentMessages:
    """Malformed content ends with a clean error, not a traceback."""

    def test_seed_reports_bad_placeholder(self, content_dir, db_file):
        tree_file = content_dir / "networking" / "skilltree.yaml"
        tree_file.write_text(tree_file.read_text() + "  - tier: 1\n")

        result = _seed(content_dir, db_file)

        assert result.exit_code == 1
        assert "placeholder" in result.stdout

    def test_validate_reports_bad_tier_bases(self, content_dir):
        tree_file = content_dir / "networking" / "skilltree.yaml"
        tree_file.write_text(tree_file.read_text().replace("  0: -2.0", "  zero: -2.0"))

        result = runner.invoke(app, ["validate", "--content-dir", str(content_dir)])

        assert result.exit_code == 1
        assert "tierBases" in result.stdout
