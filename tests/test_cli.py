# This is free software for the public good of a permacomputer hosted at
# permacomputer.com, an always-on computer by the people, for the people.
# One which is durable, easy to repair, & distributed like tap water
# for machine learning intelligence.
#
# The permacomputer is community-owned infrastructure optimized around
# four values:
#
#   TRUTH      First principles, math & science, open source code freely distributed
#   FREEDOM    Voluntary partnerships, freedom from tyranny & corporate control
#   HARMONY    Minimal waste, self-renewing systems with diverse thriving connections
#   LOVE       Be yourself without hurting others, cooperation through natural law
#
# This software contributes to that vision by letting CI pipelines trigger, follow and clean up dbt Cloud job runs through a unified interface, accessible to all.
# Code is seeds to sprout on any abandoned technology.

"""
Tests for the command line entry point
"""

from unittest.mock import AsyncMock, patch

import pytest

from dbt_cloud_run.cli import _async_main, _build_parser
from dbt_cloud_run.errors import RunLifecycleError
from dbt_cloud_run.models import CleanupOutcome, Run, RunHandle, RunResult


IDS = ["--account-id", "123", "--job-id", "456"]


@pytest.fixture(autouse=True)
def quiet_logging():
    """Leave pytest's log capture alone."""
    with patch("dbt_cloud_run.cli.configure_logging"):
        yield


def _result(make_run, status=10, failed=False):
    return RunResult(
        handle=RunHandle(run_id=42),
        run=Run.from_response(make_run(status=status, git_sha="abc")),
        failed=failed,
    )


class TestParser:
    """Test argument parsing."""

    def test_start_defaults_from_runner(self, monkeypatch):
        monkeypatch.setenv("GITHUB_STATE", "/tmp/state")
        monkeypatch.setenv("GITHUB_OUTPUT", "/tmp/output")

        args = _build_parser().parse_args(["start"])

        assert args.state_file == "/tmp/state"
        assert args.output_file == "/tmp/output"
        assert args.artifacts_dir == "target"

    def test_verbose_from_runner_debug(self, monkeypatch):
        monkeypatch.setenv("RUNNER_DEBUG", "1")
        assert _build_parser().parse_args(["start"]).verbose is True

    def test_cleanup_run_id(self):
        args = _build_parser().parse_args(["cleanup", "--run-id", "9"])
        assert args.run_id == 9


class TestStartCommand:
    """Test `dbt-cloud-run start`."""

    @pytest.mark.asyncio
    async def test_success_writes_state_and_outputs(self, tmp_path, make_run):
        state, output = tmp_path / "state", tmp_path / "output"

        async def fake_start(config, on_submitted=None, artifacts_dir=None):
            on_submitted(RunHandle(run_id=42))
            return _result(make_run)

        with patch("dbt_cloud_run.cli.start", side_effect=fake_start) as mock_start:
            code = await _async_main(IDS + [
                "start", "--state-file", str(state), "--output-file", str(output),
                "--artifacts-dir", str(tmp_path / "target"),
            ])

        assert code == 0
        assert state.read_text().strip() == "dbtCloudRunID=42"
        assert output.read_text().splitlines() == ["git_sha=abc", "run_id=42"]
        config = mock_start.call_args.args[0]
        assert config.dbt_cloud_account_id == "123"
        assert config.dbt_cloud_job_id == "456"

    @pytest.mark.asyncio
    async def test_outputs_to_stdout_without_output_file(self, make_run, capsys):
        with patch("dbt_cloud_run.cli.start", new_callable=AsyncMock) as mock_start:
            mock_start.return_value = _result(make_run)
            code = await _async_main(IDS + ["start"])

        assert code == 0
        assert "run_id=42" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_failed_run_exits_nonzero(self, make_run, capsys):
        with patch("dbt_cloud_run.cli.start", new_callable=AsyncMock) as mock_start:
            mock_start.return_value = _result(make_run, status=20, failed=True)
            code = await _async_main(IDS + ["start"])

        assert code == 1
        assert "finished with 'Error'" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_integration_failure(self, capsys):
        error = RunLifecycleError("cannot connect")
        error.__cause__ = ConnectionError("cannot connect")

        with patch("dbt_cloud_run.cli.start", new_callable=AsyncMock) as mock_start:
            mock_start.side_effect = error
            code = await _async_main(IDS + ["start"])

        err = capsys.readouterr().err
        assert code == 1
        assert "There has been a problem with running your dbt Cloud job" in err
        assert "caused by ConnectionError" in err

    @pytest.mark.asyncio
    async def test_github_annotation(self, monkeypatch, capsys):
        monkeypatch.setenv("GITHUB_ACTIONS", "true")

        with patch("dbt_cloud_run.cli.start", new_callable=AsyncMock) as mock_start:
            mock_start.side_effect = RunLifecycleError("boom")
            await _async_main(IDS + ["start"])

        assert capsys.readouterr().out.startswith("::error::There has been a problem")

    @pytest.mark.asyncio
    async def test_github_annotation_escaping(self, monkeypatch, capsys):
        monkeypatch.setenv("GITHUB_ACTIONS", "true")

        with patch("dbt_cloud_run.cli.start", new_callable=AsyncMock) as mock_start:
            mock_start.side_effect = RunLifecycleError("100% failed\r\nretry")
            await _async_main(IDS + ["start"])

        out = capsys.readouterr().out
        assert "100%25 failed%0D%0Aretry" in out
        assert out.count("\n") == 1

    @pytest.mark.asyncio
    async def test_bad_steps_override(self, monkeypatch, capsys):
        monkeypatch.setenv("INPUT_STEPS_OVERRIDE", '["unterminated')

        with patch("dbt_cloud_run.cli.start", new_callable=AsyncMock) as mock_start:
            code = await _async_main(IDS + ["start"])

        assert code == 2
        mock_start.assert_not_called()
        assert "Could not interpret steps_override" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_missing_configuration(self, capsys):
        code = await _async_main(["start"])

        assert code == 2
        assert "Invalid configuration" in capsys.readouterr().err


class TestCleanupCommand:
    """Test `dbt-cloud-run cleanup`."""

    @pytest.mark.asyncio
    async def test_uses_saved_state(self, monkeypatch):
        monkeypatch.setenv("STATE_dbtCloudRunID", "42")

        with patch("dbt_cloud_run.cli.cleanup", new_callable=AsyncMock) as mock_cleanup:
            mock_cleanup.return_value = CleanupOutcome.CANCELLED
            code = await _async_main(IDS + ["cleanup"])

        assert code == 0
        assert mock_cleanup.call_args.args[0] == RunHandle(run_id=42)

    @pytest.mark.asyncio
    async def test_run_id_flag(self):
        with patch("dbt_cloud_run.cli.cleanup", new_callable=AsyncMock) as mock_cleanup:
            mock_cleanup.return_value = CleanupOutcome.NOTHING_TO_CLEAN
            await _async_main(IDS + ["cleanup", "--run-id", "7"])

        assert mock_cleanup.call_args.args[0] == RunHandle(run_id=7)

    @pytest.mark.asyncio
    async def test_no_run_started(self, tmp_path):
        with patch("dbt_cloud_run.cli.cleanup", new_callable=AsyncMock) as mock_cleanup:
            code = await _async_main(IDS + ["cleanup", "--state-file", str(tmp_path / "state")])

        assert code == 0
        mock_cleanup.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_does_not_fail_invocation(self, monkeypatch):
        monkeypatch.setenv("STATE_dbtCloudRunID", "42")

        with patch("dbt_cloud_run.cli.cleanup", new_callable=AsyncMock) as mock_cleanup:
            mock_cleanup.return_value = CleanupOutcome.FAILED
            code = await _async_main(IDS + ["cleanup"])

        assert code == 0

    @pytest.mark.asyncio
    async def test_invalid_configuration_does_not_fail(self, monkeypatch):
        monkeypatch.setenv("STATE_dbtCloudRunID", "42")

        with patch("dbt_cloud_run.cli.cleanup", new_callable=AsyncMock) as mock_cleanup:
            code = await _async_main(["cleanup"])

        assert code == 0
        mock_cleanup.assert_not_called()
