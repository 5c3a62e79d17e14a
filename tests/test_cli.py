"""Tests for the command-line interface."""

import json

import pytest
import yaml
from click.testing import CliRunner
from loguru import logger

from main import main
from samples import load_example


@pytest.fixture
def runner():
    yield CliRunner()
    # The CLI points loguru at the runner's stderr, which is closed afterwards
    logger.remove()


def _write(tmp_path, name, document):
    path = tmp_path / name
    if isinstance(document, str):
        path.write_text(document, encoding="utf-8")
    elif name.endswith((".yaml", ".yml")):
        path.write_text(yaml.safe_dump(document), encoding="utf-8")
    else:
        path.write_text(json.dumps(document), encoding="utf-8")
    return str(path)


def _invoke(runner, *args):
    return runner.invoke(main, ["--log-level", "ERROR", *args])


class TestSkillCommand:
    """skill FILE."""

    def test_valid_skill(self, runner, tmp_path):
        path = _write(tmp_path, "skill.json", load_example("skill"))
        result = _invoke(runner, "skill", path)
        assert result.exit_code == 0
        assert "Ready to export" in result.output

    def test_json_output(self, runner, tmp_path):
        path = _write(tmp_path, "skill.json", load_example("skill"))
        result = _invoke(runner, "skill", path, "--format", "json")
        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["valid"] is True
        assert report["ready_to_export"] is True
        assert [w["code"] for w in report["warnings"]] == ["INTENT_NO_TOOLS"]

    def test_yaml_input(self, runner, tmp_path):
        path = _write(tmp_path, "skill.yaml", load_example("skill"))
        assert _invoke(runner, "skill", path).exit_code == 0

    def test_fail_on_warnings(self, runner, tmp_path):
        path = _write(tmp_path, "skill.json", load_example("skill"))
        assert _invoke(runner, "skill", path, "--fail-on-warnings").exit_code == 1

    def test_invalid_skill(self, runner, tmp_path):
        path = _write(tmp_path, "skill.json", {"id": "draft"})
        result = _invoke(runner, "skill", path, "--format", "json")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["valid"] is False

    def test_quick(self, runner, tmp_path):
        path = _write(tmp_path, "skill.json", {"id": "draft"})
        result = _invoke(runner, "skill", path, "--quick", "--format", "json")
        assert result.exit_code == 1
        report = json.loads(result.stdout)
        assert report["valid"] is False
        assert "ready_to_export" not in report

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_unreadable_document(self, runner, tmp_path, content):
        path = _write(tmp_path, "skill.json", content)
        assert _invoke(runner, "skill", path).exit_code == 2

    def test_missing_file(self, runner, tmp_path):
        assert _invoke(runner, "skill", str(tmp_path / "absent.json")).exit_code == 2


class TestSolutionCommand:
    """solution FILE [--context FILE]."""

    def test_valid_solution(self, runner, tmp_path):
        path = _write(tmp_path, "solution.json", load_example("solution"))
        assert _invoke(runner, "solution", path).exit_code == 0

    def test_context_enables_connector_checks(self, runner, tmp_path):
        path = _write(tmp_path, "solution.json", load_example("solution"))
        context = _write(tmp_path, "context.json", {"connectors": [{"id": "orders-mcp"}], "mcp_store": {}})
        result = _invoke(runner, "solution", path, "--context", context, "--format", "json")
        assert result.exit_code == 1
        report = json.loads(result.stdout)
        assert [e["code"] for e in report["errors"]] == ["connector_code_available"]

    def test_invalid_context(self, runner, tmp_path):
        path = _write(tmp_path, "solution.json", load_example("solution"))
        context = _write(tmp_path, "context.json", {"mcp_store": {"db": [{"content": "x"}]}})
        assert _invoke(runner, "solution", path, "--context", context).exit_code == 2


class TestOtherCommands:
    """summary and example."""

    def test_summary_json(self, runner, tmp_path):
        path = _write(tmp_path, "skill.json", load_example("skill"))
        result = _invoke(runner, "summary", path, "--format", "json")
        assert result.exit_code == 0
        summary = json.loads(result.stdout)
        assert summary["progress"] == 89
        assert summary["warning_count"] == 1

    def test_summary_text(self, runner, tmp_path):
        path = _write(tmp_path, "skill.json", load_example("skill"))
        result = _invoke(runner, "summary", path)
        assert result.exit_code == 0
        assert "Progress: 89%" in result.output

    def test_example(self, runner):
        result = _invoke(runner, "example", "skill")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == load_example("skill")

    def test_unknown_example(self, runner):
        assert _invoke(runner, "example", "workflow").exit_code == 2
