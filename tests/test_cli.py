"""Smoke tests for the command line interface."""
import asyncio
import io

import pytest
from click.testing import CliRunner
from rich.console import Console

from voice_interviewer import cli as cli_module
from voice_interviewer.cli import cli

from conftest import JOB_DESCRIPTION, RESUME


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path):
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "config.yaml").write_text("logging:\n  level: ERROR\n", encoding="utf-8")
    return directory


def test_domains_lists_templates(runner, config_dir):
    result = runner.invoke(cli, ["--config", str(config_dir), "domains"])
    assert result.exit_code == 0
    assert "backend" in result.output
    assert "devops" in result.output


def test_offline_plan_prints_questions(runner, config_dir, tmp_path):
    resume = tmp_path / "resume.txt"
    resume.write_text(RESUME, encoding="utf-8")
    job = tmp_path / "job.txt"
    job.write_text(JOB_DESCRIPTION, encoding="utf-8")

    result = runner.invoke(cli, [
        "--config", str(config_dir), "plan",
        "-r", str(resume), "-j", str(job), "-n", "Jane", "-m", "12", "--offline",
    ])
    assert result.exit_code == 0, result.output
    assert "q_1" in result.output
    assert "q_4" in result.output
    assert "q_5" not in result.output


def test_config_shows_timing(runner, config_dir):
    result = runner.invoke(cli, ["--config", str(config_dir), "config"])
    assert result.exit_code == 0, result.output
    assert "timing.response_timeout" in result.output
    assert "heuristic mode" in result.output


def test_invalid_config_exits_with_error(runner, tmp_path):
    (tmp_path / "config.yaml").write_text("timing:\n  thinking_grace: 0\n", encoding="utf-8")
    result = runner.invoke(cli, ["--config", str(tmp_path), "domains"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_failed_end_of_interview_is_reported(monkeypatch):
    out = io.StringIO()
    monkeypatch.setattr(cli_module, "console", Console(file=out))

    async def scenario():
        loop = asyncio.get_running_loop()
        failed = loop.create_future()
        failed.set_exception(RuntimeError("report crashed"))
        cancelled = loop.create_future()
        cancelled.cancel()
        cli_module._log_end_failure(failed)
        cli_module._log_end_failure(cancelled)

    asyncio.run(scenario())
    assert "report crashed" in out.getvalue()
    assert out.getvalue().count("Could not end the interview") == 1
