"""Tests for the canonical example documents."""

import pytest

from samples import EXAMPLES, load_example
from validators import validate_skill, validate_solution


class TestLoadExample:
    """load_example returns fresh parsed documents."""

    def test_known_examples(self):
        assert sorted(EXAMPLES) == ["skill", "solution"]
        assert load_example("skill")["id"]
        assert load_example("solution")["skills"]

    def test_fresh_copies(self):
        first = load_example("skill")
        first["tools"].clear()
        assert load_example("skill")["tools"]

    def test_unknown_example(self):
        with pytest.raises(ValueError, match="Unknown example"):
            load_example("workflow")


class TestExamplesValidate:
    """Both examples pass their validators."""

    def test_skill_is_ready(self):
        result = validate_skill(load_example("skill"))
        assert result.valid is True
        assert result.ready_to_export is True

    def test_solution_is_valid(self):
        assert validate_solution(load_example("solution")).valid is True
