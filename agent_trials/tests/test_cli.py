"""Tests for the agent-trials command line interface."""

import json
from unittest.mock import AsyncMock

import pytest
import yaml
from click.testing import CliRunner

from agent_trials import cli as cli_module
from agent_trials.cli import cli
from agent_trials.models import BatchResult, RunStatus
from agent_trials.storage import SQLiteStore


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.setenv("AGENT_TRIALS_TELEMETRY_ENABLED", "false")
    monkeypatch.setenv("AGENT_TRIALS_DB_PATH", str(tmp_path / "default.db"))


@pytest.fixture
def tests_dir(tmp_path):
    directory = tmp_path / "trials"
    directory.mkdir()
    (directory / "greet.yaml").write_text(yaml.dump({
        "test": {
            "id": "greet",
            "name": "Greets the user",
            "agent_id": "a1",
            "input_message": "hi",
            "eval_criteria": "Agent replies with a greeting",
        }
    }))
    (directory / "pricing.yaml").write_text(yaml.dump({
        "tests": [
            {"id": "pricing", "name": "Quotes pricing",
             "behavior": "user asks about pricing", "project_id": "p1"},
        ]
    }))
    return directory


@pytest.fixture
def fleet(tmp_path):
    path = tmp_path / "fleet.yaml"
    path.write_text(yaml.dump({"agents": [{"id": "a1", "name": "Support Bot", "port": 4101}]}))
    return path


def fake_run_batch(statuses):
    """Replacement for run_batch that closes each run with a scripted status."""

    async def run_batch(config, registry, store, telemetry, test_case_ids):
        runs = []
        for case_id, status in zip(test_case_ids, statuses):
            run = store.create_run(case_id)
            if status == RunStatus.ERROR:
                runs.append(store.complete_run(run.id, status, error="Agent not found: a1"))
            else:
                runs.append(store.complete_run(run.id, status, score=9))
        return BatchResult(runs=runs)

    return run_batch


class TestListCommand:
    def test_lists_cases(self, tests_dir):
        result = CliRunner().invoke(cli, ["list", str(tests_dir)])

        assert result.exit_code == 0
        assert "[greet] Greets the user (agent a1)" in result.output
        assert "[pricing] Quotes pricing (planned) [project p1]" in result.output
        assert "Total: 2 test case(s)" in result.output

    def test_empty_directory(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        result = CliRunner().invoke(cli, ["list", str(empty)])

        assert result.exit_code == 1
        assert "No test cases found" in result.output


class TestValidateCommand:
    def test_all_valid(self, tests_dir):
        result = CliRunner().invoke(cli, ["validate", str(tests_dir)])

        assert result.exit_code == 0
        assert "Summary: 2/2 valid" in result.output

    def test_invalid_case(self, tests_dir):
        (tests_dir / "broken.yaml").write_text(yaml.dump({"test": {"id": "broken", "name": "No target"}}))

        result = CliRunner().invoke(cli, ["validate", str(tests_dir)])

        assert result.exit_code == 1
        assert "❌ [broken] No target" in result.output
        assert "Summary: 2/3 valid" in result.output

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("test: [unclosed")

        result = CliRunner().invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid YAML" in result.output


class TestRunCommand:
    def test_all_pass(self, monkeypatch, tests_dir, fleet, tmp_path):
        monkeypatch.setattr(cli_module, "run_batch", fake_run_batch([RunStatus.PASSED] * 2))
        db = tmp_path / "trials.db"

        result = CliRunner().invoke(
            cli, ["run", str(tests_dir), "--agents", str(fleet), "--db", str(db)]
        )

        assert result.exit_code == 0, result.output
        assert "Found 2 test case(s), running 2" in result.output
        assert "Passed: 2/2" in result.output
        assert [c.id for c in SQLiteStore(db).find_all()] == ["greet", "pricing"]
        assert len(SQLiteStore(db).find_by_test_case("greet")) == 1

    def test_failure_exit_code(self, monkeypatch, tests_dir, fleet, tmp_path):
        monkeypatch.setattr(cli_module, "run_batch", fake_run_batch([RunStatus.PASSED, RunStatus.FAILED]))

        result = CliRunner().invoke(
            cli, ["run", str(tests_dir), "--agents", str(fleet), "--db", str(tmp_path / "t.db")]
        )

        assert result.exit_code == 1

    def test_error_exit_code_and_json_report(self, monkeypatch, tests_dir, fleet, tmp_path):
        monkeypatch.setattr(cli_module, "run_batch", fake_run_batch([RunStatus.ERROR]))
        report = tmp_path / "out" / "report.json"

        result = CliRunner().invoke(cli, [
            "run", str(tests_dir), "--agents", str(fleet), "--db", str(tmp_path / "t.db"),
            "--ids", "greet", "--format", "json", "--output", str(report),
        ])

        assert result.exit_code == 2
        assert "running 1" in result.output
        data = json.loads(report.read_text())
        assert data["summary"]["errors"] == 1
        assert data["results"][0]["error"] == "Agent not found: a1"

    def test_invalid_definitions_abort(self, monkeypatch, tests_dir, fleet, tmp_path):
        (tests_dir / "broken.yaml").write_text(yaml.dump({"test": {"id": "broken", "name": "No target"}}))
        never = AsyncMock()
        monkeypatch.setattr(cli_module, "run_batch", never)

        result = CliRunner().invoke(
            cli, ["run", str(tests_dir), "--agents", str(fleet), "--db", str(tmp_path / "t.db")]
        )

        assert result.exit_code == 1
        never.assert_not_called()

    def test_agents_file_required(self, tests_dir):
        result = CliRunner().invoke(cli, ["run", str(tests_dir)])
        assert result.exit_code == 2
        assert "--agents" in result.output


class TestHistoryCommand:
    def test_missing_database(self, tmp_path):
        result = CliRunner().invoke(cli, ["history", "greet", "--db", str(tmp_path / "none.db")])

        assert result.exit_code == 1
        assert "No database at" in result.output

    def test_no_runs(self, tmp_path):
        db = tmp_path / "trials.db"
        SQLiteStore(db)

        result = CliRunner().invoke(cli, ["history", "greet", "--db", str(db)])

        assert result.exit_code == 0
        assert "No runs found for greet" in result.output

    def test_shows_runs(self, tmp_path):
        db = tmp_path / "trials.db"
        store = SQLiteStore(db)
        for score in (4, 9):
            run = store.create_run("greet")
            store.complete_run(run.id, RunStatus.PASSED, score=score)

        result = CliRunner().invoke(cli, ["history", "greet", "--db", str(db), "-n", "1"])

        assert result.exit_code == 0
        assert "Runs of greet:" in result.output
        assert "(score 9/10)" in result.output
        assert "(score 4/10)" not in result.output
