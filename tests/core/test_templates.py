"""Tests for question templates and merge_templates."""

import json

import pytest
from pydantic import ValidationError

from skillseed.core.templates import (
    CuedRecallTemplate,
    RecognitionTemplate,
    merge_templates,
    parse_templates,
    templates_from_json,
    templates_to_json,
)


class TestMergeTemplates:
    """Tests for merge_templates."""

    def test_appends_new_types_and_keeps_existing(self, make_template):
        """Existing recognition is kept, new cued_recall is appended."""
        existing = [make_template("recognition", prompt="old")]
        seed = [
            make_template("recognition", prompt="new-recog"),
            make_template("cued_recall", prompt="new-cued", answer="b"),
        ]

        result = merge_templates(existing, seed)

        assert len(result) == 2
        assert result[0].prompt == "old"
        assert result[1].type == "cued_recall"
        assert result[1].prompt == "new-cued"

    def test_no_new_types_returns_existing(self, make_template):
        """Seed with only known types leaves existing unchanged."""
        existing = [make_template("recognition", prompt="a"), make_template("free_recall")]
        seed = [make_template("recognition", prompt="x")]

        assert merge_templates(existing, seed) == existing

    def test_empty_existing_returns_seed(self, make_template):
        seed = [make_template("application")]
        assert merge_templates([], seed) == seed

    def test_empty_seed_returns_existing(self, make_template):
        existing = [make_template("practical")]
        assert merge_templates(existing, []) == existing

    def test_both_empty(self):
        assert merge_templates([], []) == []

    def test_preserves_seed_order_for_new_types(self, make_template):
        existing = [make_template("recognition")]
        seed = [
            make_template("practical"),
            make_template("recognition", prompt="dropped"),
            make_template("cued_recall"),
        ]

        result = merge_templates(existing, seed)

        assert [t.type for t in result] == ["recognition", "practical", "cued_recall"]

    def test_does_not_mutate_inputs(self, make_template):
        existing = [make_template("recognition")]
        seed = [make_template("cued_recall")]

        merge_templates(existing, seed)

        assert len(existing) == 1
        assert len(seed) == 1


class TestTemplateModels:
    """Tests for template parsing and serialization."""

    def test_discriminates_on_type(self):
        templates = parse_templates(
            [
                {
                    "type": "recognition",
                    "prompt": "p",
                    "correctAnswer": "a",
                    "explanation": "e",
                    "choices": ["a", "b"],
                },
                {
                    "type": "cued_recall",
                    "prompt": "p",
                    "correctAnswer": "a",
                    "explanation": "e",
                    "acceptableAnswers": ["A"],
                },
            ]
        )

        assert isinstance(templates[0], RecognitionTemplate)
        assert templates[0].choices == ["a", "b"]
        assert isinstance(templates[1], CuedRecallTemplate)
        assert templates[1].acceptable_answers == ["A"]

    def test_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            parse_templates(
                [{"type": "essay", "prompt": "p", "correctAnswer": "a", "explanation": "e"}]
            )

    def test_variant_rejects_foreign_type(self):
        with pytest.raises(ValidationError):
            RecognitionTemplate(type="essay", prompt="p", correct_answer="a", explanation="e")

    def test_rejects_blank_prompt(self):
        with pytest.raises(ValidationError):
            parse_templates(
                [{"type": "recognition", "prompt": "  ", "correctAnswer": "a", "explanation": "e"}]
            )

    def test_rejects_field_from_other_variant(self):
        """Variant-specific fields are not accepted on other variants."""
        with pytest.raises(ValidationError):
            parse_templates(
                [
                    {
                        "type": "recognition",
                        "prompt": "p",
                        "correctAnswer": "a",
                        "explanation": "e",
                        "rubric": "r",
                    }
                ]
            )

    def test_json_uses_camel_case_and_omits_unset(self, make_template):
        text = templates_to_json([make_template("cued_recall", hints=["think"])])
        data = json.loads(text)

        assert data[0]["correctAnswer"] == "A"
        assert data[0]["hints"] == ["think"]
        assert "acceptableAnswers" not in data[0]
        assert templates_from_json(text) == [make_template("cued_recall", hints=["think"])]

    def test_from_json_empty(self):
        assert templates_from_json(None) == []
        assert templates_from_json("") == []
