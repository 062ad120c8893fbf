"""Question templates attached to learning nodes.

A template is a tagged variant keyed by ``type``. Each variant carries the
common prompt/correctAnswer/explanation triple plus its own optional fields.
Templates are stored as a JSON array on the node row, using the camelCase
keys content authors and the lesson API see.
"""

from __future__ import annotations

from typing import Annotated, Literal, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class _TemplateBase(BaseModel):
    """Fields shared by every template variant."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    prompt: str
    correct_answer: str
    explanation: str

    @field_validator("prompt", "correct_answer", "explanation")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value


class RecognitionTemplate(_TemplateBase):
    """Multiple choice: pick the correct answer among choices."""

    type: Literal["recognition"] = "recognition"
    choices: list[str] = Field(default_factory=list)


class CuedRecallTemplate(_TemplateBase):
    """Short answer with a cue; graded against acceptable answers."""

    type: Literal["cued_recall"] = "cued_recall"
    acceptable_answers: list[str] | None = None
    hints: list[str] | None = None


class FreeRecallTemplate(_TemplateBase):
    """Open answer graded against key points."""

    type: Literal["free_recall"] = "free_recall"
    acceptable_answers: list[str] | None = None
    rubric: str | None = None
    key_points: list[str] | None = None


class ApplicationTemplate(_TemplateBase):
    """Scenario question applying the concept."""

    type: Literal["application"] = "application"
    choices: list[str] | None = None
    hints: list[str] | None = None
    rubric: str | None = None
    key_points: list[str] | None = None


class PracticalTemplate(_TemplateBase):
    """Hands-on task, usually graded by the external webhook."""

    type: Literal["practical"] = "practical"
    hints: list[str] | None = None
    rubric: str | None = None
    key_points: list[str] | None = None


QuestionTemplate = Annotated[
    Union[
        RecognitionTemplate,
        CuedRecallTemplate,
        FreeRecallTemplate,
        ApplicationTemplate,
        PracticalTemplate,
    ],
    Field(discriminator="type"),
]

_templates_adapter: TypeAdapter[list[QuestionTemplate]] = TypeAdapter(list[QuestionTemplate])


def merge_templates(
    existing: Sequence[QuestionTemplate],
    seed: Sequence[QuestionTemplate],
) -> list[QuestionTemplate]:
    """Merge seed templates into a node's existing templates.

    Existing templates are kept unchanged and in order. Seed templates are
    appended only when their type is not already present in ``existing``;
    a type that is already present is never rewritten.

    Args:
        existing: Templates currently stored on the node
        seed: Templates from the seed definition

    Returns:
        New list; neither input is modified.
    """
    existing_types = {t.type for t in existing}
    return [*existing, *(t for t in seed if t.type not in existing_types)]


def parse_templates(data: object) -> list[QuestionTemplate]:
    """Validate a list of template dicts (camelCase or snake_case keys)."""
    return _templates_adapter.validate_python(data)


def templates_to_json(templates: Sequence[QuestionTemplate]) -> str:
    """Serialize templates for the ``question_templates`` column."""
    return _templates_adapter.dump_json(
        list(templates), by_alias=True, exclude_none=True
    ).decode("utf-8")


def templates_from_json(text: str | None) -> list[QuestionTemplate]:
    """Deserialize the ``question_templates`` column."""
    if not text:
        return []
    return _templates_adapter.validate_json(text)
