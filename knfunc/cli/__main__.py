import signal
import threading
from typing import Any, Dict

import typer
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic.exceptions import DynamicApiError  # type: ignore

from knfunc import __version__
from knfunc.errors import KnfuncError
from knfunc.logger import logger, setup_logger
from knfunc.runner import Command, run

CANCEL_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def version_callback(version: bool) -> None:
    if version:
        typer.echo(f"knfunc Version: {__version__}")
        raise typer.Exit()


def install_signal_handlers(stop_event: threading.Event) -> Dict[int, Any]:
    """
    Sets stop_event on SIGTERM and SIGINT, and returns the handlers that were
    replaced.
    """

    def handle_signal(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, cancelling...")
        stop_event.set()

    previous = {}
    for signum in CANCEL_SIGNALS:
        previous[signum] = signal.signal(signum, handle_signal)
    return previous


cli = typer.Typer(
    context_settings={"help_option_names": ["-h", "--help"]}, add_completion=False
)


@cli.command()
def run_command(
    command: str = typer.Argument(
        Command.DEPLOY.value,
        help="The operation to run: 'deploy' applies the Knative Service and "
        "waits for it to be ready, 'observe' syncs the KDexFunction status with "
        "the Knative Service.",
        show_default=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit", callback=version_callback
    ),
) -> None:
    """
    Deploy or observe a KDex function running on Knative.

    The function is described by environment variables, e.g. FUNCTION_NAME,
    FUNCTION_NAMESPACE and FUNCTION_IMAGE.
    """
    setup_logger(verbose)

    try:
        cmd = Command(command)
    except ValueError:
        logger.error(f"Error: unknown command: {command}")
        raise typer.Exit(1)

    stop_event = threading.Event()
    previous = install_signal_handlers(stop_event)
    try:
        run(cmd, stop_event=stop_event)
    except (KnfuncError, ApiException, DynamicApiError) as e:
        logger.error(f"Error: {e}")
        raise typer.Exit(1)
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
