"""
Tests for the command line tools.
"""
from datetime import datetime

from typer.testing import CliRunner

import cli
from schemas import LogOut, RunGraph, RunOut
from web.observer import RunObserver

runner = CliRunner()

NOW = datetime(2024, 1, 1, 12, 0, 0)


class ScriptedClient:
    def __init__(self, statuses):
        self.statuses = list(statuses)

    def get_run(self, run_id):
        return RunOut(
            id=run_id, project_id="p1", name="Run", status=self.statuses.pop(0), trigger_type="manual",
            created_at=NOW, updated_at=NOW,
        )

    def get_run_logs(self, run_id):
        return [
            LogOut(id="l1", run_id=run_id, project_id="p1", level="info", message="Cloning repo",
                   source="worker", timestamp=NOW, created_at=NOW)
        ]

    def get_run_graph(self, run_id):
        return RunGraph(nodes=[], edges=[])

    def get_run_costs(self, run_id):
        return []


class TestCli:
    def test_version_reads_package_metadata(self, monkeypatch):
        monkeypatch.setattr(cli, "package_version", lambda name: "9.9.9")
        result = runner.invoke(cli.app, ["version"])
        assert result.exit_code == 0
        assert result.output.strip() == "langchain-flow 9.9.9"

    def test_watch_prints_each_log_once(self, monkeypatch):
        client = ScriptedClient(["running", "completed"])
        monkeypatch.setattr(cli, "FlowApiClient", lambda *args, **kwargs: client)
        monkeypatch.setattr(cli, "RunObserver", lambda api, run_id: RunObserver(api, run_id, sleep=lambda seconds: None))

        result = runner.invoke(cli.app, ["watch", "r1"])
        assert result.exit_code == 0
        assert result.output.count("Cloning repo") == 1
        assert "Run completed" in result.output

    def test_watch_fails_for_unsuccessful_runs(self, monkeypatch):
        client = ScriptedClient(["failed"])
        monkeypatch.setattr(cli, "FlowApiClient", lambda *args, **kwargs: client)

        result = runner.invoke(cli.app, ["watch", "r1"])
        assert result.exit_code == 1
        assert "Run failed" in result.output
