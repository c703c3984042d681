from unittest.mock import patch

from typer.testing import CliRunner

import knfunc.cli.__main__
from knfunc import __version__
from knfunc.cli.__main__ import cli
from knfunc.errors import ConfigError, ReadinessTimeoutError
from knfunc.runner import Command

runner = CliRunner()


def test_defaults_to_deploy() -> None:
    with patch.object(knfunc.cli.__main__, "run") as mock_run:
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert mock_run.call_args[0][0] is Command.DEPLOY


def test_observe() -> None:
    with patch.object(knfunc.cli.__main__, "run") as mock_run:
        result = runner.invoke(cli, ["observe"])

        assert result.exit_code == 0
        assert mock_run.call_args[0][0] is Command.OBSERVE
        assert mock_run.call_args[1]["stop_event"] is not None


def test_unknown_command() -> None:
    with patch.object(knfunc.cli.__main__, "run") as mock_run:
        result = runner.invoke(cli, ["destroy"])

        assert result.exit_code == 1
        mock_run.assert_not_called()


def test_errors_exit_with_1() -> None:
    for error in (
        ConfigError("FUNCTION_NAME is required"),
        ReadinessTimeoutError("timeout waiting for service readiness"),
    ):
        with patch.object(knfunc.cli.__main__, "run", side_effect=error):
            result = runner.invoke(cli, ["deploy"])

            assert result.exit_code == 1


def test_version() -> None:
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_errors_are_reported() -> None:
    error = ReadinessTimeoutError("timeout waiting for service readiness")
    with patch.object(knfunc.cli.__main__, "run", side_effect=error):
        result = runner.invoke(cli, ["deploy"])

        assert result.exit_code == 1
        assert "Error: timeout waiting for service readiness" in result.output


def test_config_errors_are_reported() -> None:
    env = {
        "FUNCTION_NAME": "myfunc",
        "FUNCTION_NAMESPACE": "myns",
        "READY_DETAIL_TEMPLATE": "Ready: {url.real}",
    }
    with patch("knfunc.runner.get_dynamic_client") as mock_get_client:
        result = runner.invoke(cli, ["observe"], env=env)

        assert result.exit_code == 1
        assert "Error: Invalid detail template" in result.output
        mock_get_client.assert_not_called()
