"""Tests for the skill-engine command line."""

import json

import pytest
from typer.testing import CliRunner

from skill_engine.cli import app

runner = CliRunner()


@pytest.fixture
def java_file(tmp_path):
    path = tmp_path / "PaymentService.java"
    path.write_text(
        "@Transactional(propagation = Propagation.REQUIRES_NEW)\npublic void pay() {}\n",
        encoding="utf-8",
    )
    return path


class TestListAndValidate:
    def test_list(self, sample_skills_dir):
        result = runner.invoke(app, ["list", "--skills", str(sample_skills_dir)])
        assert result.exit_code == 0
        assert "spring-transactions@1.0.0" in result.output
        assert "python-async@1.0.0" in result.output

    def test_validate_ok(self, sample_skills_dir):
        result = runner.invoke(app, ["validate", "-s", str(sample_skills_dir)])
        assert result.exit_code == 0
        assert "2 skills" in result.output

    def test_validate_reports_configuration_error(self, write_skill):
        write_skill("bad", "name: bad\ntriggers: ['re:(']")
        result = runner.invoke(app, ["validate", "-s", str(write_skill.root)])
        assert result.exit_code == 1
        assert "Invalid skill configuration" in result.output

    def test_show_unknown_skill(self, sample_skills_dir):
        result = runner.invoke(app, ["show", "nope", "-s", str(sample_skills_dir)])
        assert result.exit_code == 1
        assert "Skill not found" in result.output


class TestMatchAndCompose:
    def test_match(self, sample_skills_dir, java_file):
        result = runner.invoke(app, ["match", str(java_file), "-s", str(sample_skills_dir)])
        assert result.exit_code == 0
        assert "spring-transactions@1.0.0" in result.output

    def test_compose_json(self, sample_skills_dir, java_file):
        result = runner.invoke(
            app, ["compose", str(java_file), "--json", "--budget", "100000", "-s", str(sample_skills_dir)]
        )
        assert result.exit_code == 0
        payload = json.loads(result.output)
        modules = [m["module"] for m in payload["manifest"]["included"]]
        assert modules[0] == "core"
        assert "propagation" in modules
        assert "## spring-transactions@1.0.0 :: core" in payload["text"]

    def test_compose_budget_too_small(self, sample_skills_dir, java_file):
        result = runner.invoke(app, ["compose", str(java_file), "-b", "5", "-s", str(sample_skills_dir)])
        assert result.exit_code == 2
        assert "Budget too small" in result.output

    def test_compose_missing_file(self, sample_skills_dir, tmp_path):
        result = runner.invoke(app, ["compose", str(tmp_path / "nope.java"), "-s", str(sample_skills_dir)])
        assert result.exit_code == 1

    def test_batch(self, sample_skills_dir, java_file, tmp_path):
        py_file = tmp_path / "worker.py"
        py_file.write_text("async def run():\n    pass\n", encoding="utf-8")
        result = runner.invoke(
            app, ["batch", str(java_file), str(py_file), "-b", "100000", "-w", "2", "-s", str(sample_skills_dir)]
        )
        assert result.exit_code == 0
        assert "python-async@1.0.0" in result.output


def test_config_shows_settings():
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert "SKILL_ENGINE_DEFAULT_BUDGET" in result.output


class TestBudgetOption:
    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_non_positive_budget_rejected(self, sample_skills_dir, java_file, value):
        result = runner.invoke(app, ["compose", str(java_file), "-b", value, "-s", str(sample_skills_dir)])
        assert result.exit_code == 2
        assert not isinstance(result.exception, ValueError)
        assert "## spring-transactions@1.0.0 :: core" not in result.output

    def test_batch_rejects_zero_budget(self, sample_skills_dir, java_file):
        result = runner.invoke(app, ["batch", str(java_file), "-b", "0", "-s", str(sample_skills_dir)])
        assert result.exit_code == 2
        assert "Batch (" not in result.output
