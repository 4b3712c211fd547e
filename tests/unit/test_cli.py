from typer.testing import CliRunner

from contentfactory.cli import app


def _isolate(tmp_path, monkeypatch):
    monkeypatch.setenv("CONTENTFACTORY_CONFIG", str(tmp_path / "missing.yaml"))


def test_steps_command_lists_catalog(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = CliRunner().invoke(app, ["steps"])

    assert result.exit_code == 0, result.output
    lines = result.stdout.strip().splitlines()
    assert len(lines) == 9
    assert lines[0].startswith("0\tmarket-analysis")
    assert lines[-1].startswith("8\tanalytics-tracking")


def test_workflow_run_completes(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = CliRunner().invoke(
        app,
        ["workflow", "run", "-p", "youtube", "--content-per-day", "2", "--workflow-id", "cli-1"],
    )

    assert result.exit_code == 0, result.output
    assert "Workflow cli-1 started" in result.stdout
    assert "Workflow cli-1: completed" in result.stdout
    assert "- publishing: completed (100%)" in result.stdout


def test_workflow_run_json_output(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = CliRunner().invoke(app, ["workflow", "run", "-p", "youtube", "--json"])

    assert result.exit_code == 0, result.output
    assert '"workflowId"' in result.stdout
    assert '"overallProgress": 100.0' in result.stdout


def test_workflow_run_reports_failure(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = CliRunner().invoke(
        app, ["workflow", "run", "-p", "youtube", "--fail-at", "trend-scan"]
    )

    assert result.exit_code == 1
    assert "market-analysis: failed" in result.stdout
    assert "trend-scan service unavailable" in result.stdout


def test_workflow_run_rejects_missing_platform(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = CliRunner().invoke(app, ["workflow", "run"])

    assert result.exit_code == 1
    assert "Invalid workflow configuration" in result.stdout


def test_workflow_run_rejects_unknown_stage(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = CliRunner().invoke(
        app, ["workflow", "run", "-p", "youtube", "--fail-at", "mastering"]
    )

    assert result.exit_code == 1
    assert "Unknown stage" in result.stdout


def test_workflow_automate(tmp_path, monkeypatch):
    _isolate(tmp_path, monkeypatch)
    result = CliRunner().invoke(
        app,
        ["workflow", "automate", "-p", "youtube", "--content-per-day", "2", "--stagger", "0"],
    )

    assert result.exit_code == 0, result.output
    assert "scheduled 2 attempts" in result.stdout
    assert "completed, 2 succeeded, 0 failed" in result.stdout
