from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Mapping, Optional

from kubernetes.dynamic import DynamicClient  # type: ignore

from knfunc.config import FunctionConfig, load_env
from knfunc.constants import READY_POLL_INTERVAL_SECONDS, READY_TIMEOUT_SECONDS
from knfunc.errors import KnfuncError, OperationError
from knfunc.k8s.function.readiness import wait_for_ready
from knfunc.k8s.function.reconciler import (
    StatusUpdate,
    TrackedStatus,
    get_kdex_function_resource,
    patch_function_status,
    reconcile_status,
)
from knfunc.k8s.function.service import (
    apply_knative_service,
    build_knative_service,
    get_knative_service_resource,
)
from knfunc.k8s.function.status import parse_knative_status
from knfunc.k8s.utils import get_dynamic_client, is_not_found, read_namespaced_object
from knfunc.logger import logger
from knfunc.utils import write_termination_message


class Command(str, Enum):
    DEPLOY = "deploy"
    OBSERVE = "observe"


def run_deploy(
    config: FunctionConfig,
    dyn_client: Optional[DynamicClient] = None,
    stop_event: Optional[threading.Event] = None,
    timeout: float = READY_TIMEOUT_SECONDS,
    poll_interval: float = READY_POLL_INTERVAL_SECONDS,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Deploys the function as a Knative Service and waits for it to be ready.

    On success the service URL is written to the termination message path.
    Nothing is rolled back on failure: a service that was applied but did not
    become ready stays in place for the next run.

    Args:
        config (FunctionConfig): The function configuration.
        dyn_client (Optional[DynamicClient]): The client to use. A client for
            the current cluster is created when not given.
        stop_event (Optional[threading.Event]): Cancels the readiness wait when set.
        timeout (float): How long to wait for readiness, in seconds.
        poll_interval (float): Seconds between readiness checks.
        environ (Optional[Mapping[str, str]]): Where forwarded variables are
            resolved. Defaults to the process environment.

    Returns:
        str: The URL of the ready service.

    Raises:
        OperationError: If applying, reading or writing the result fails.
        ReadinessTimeoutError: If the service is not ready in time.
        WaitCancelledError: If the wait is cancelled.
    """
    if dyn_client is None:
        dyn_client = get_dynamic_client()

    knative_service = build_knative_service(config, environ)

    try:
        apply_knative_service(dyn_client, knative_service)
    except KnfuncError:
        raise
    except Exception as e:
        raise OperationError("failed to apply knative service", e) from e

    logger.info("Waiting for service to be Ready...")
    try:
        url = wait_for_ready(
            get_knative_service_resource(dyn_client),
            config.function_name,
            config.function_namespace,
            timeout=timeout,
            poll_interval=poll_interval,
            stop_event=stop_event,
        )
    except KnfuncError:
        raise
    except Exception as e:
        raise OperationError("failed to wait for service readiness", e) from e

    logger.info(f"Service is Ready. URL: {url}")

    try:
        write_termination_message(url, config.termination_log_path)
    except OSError as e:
        raise OperationError("failed to write termination message", e) from e

    return url


def run_observe(
    config: FunctionConfig, dyn_client: Optional[DynamicClient] = None
) -> Optional[StatusUpdate]:
    """
    Syncs the KDexFunction status with the state of its Knative Service.

    The status is patched at most once, and only when the reconciliation
    decides it has to change.

    Args:
        config (FunctionConfig): The function configuration.
        dyn_client (Optional[DynamicClient]): The client to use. A client for
            the current cluster is created when not given.

    Returns:
        Optional[StatusUpdate]: The decided update, or None if the Knative
        Service does not exist.

    Raises:
        OperationError: If reading either object or patching the status fails.
    """
    if dyn_client is None:
        dyn_client = get_dynamic_client()

    name = config.function_name
    namespace = config.function_namespace

    try:
        service = read_namespaced_object(
            get_knative_service_resource(dyn_client), name, namespace
        )
    except Exception as e:
        if is_not_found(e):
            # TODO: decide whether a missing service should move the
            # KDexFunction to a failed or unknown state.
            logger.info(f"Knative Service {namespace}/{name} not found")
            return None
        raise OperationError("failed to get knative service", e) from e

    observed = parse_knative_status(service)
    logger.info(
        f"Observation: Ready={observed.ready}, Msg={observed.reason}, URL={observed.url}"
    )

    try:
        function_resource = get_kdex_function_resource(dyn_client)
        function = read_namespaced_object(function_resource, name, namespace)
    except Exception as e:
        raise OperationError("failed to get kdex function", e) from e

    tracked = TrackedStatus.from_object(function)
    update = reconcile_status(
        observed,
        tracked,
        base_path=config.function_base_path,
        ready_detail_template=config.ready_detail_template,
        not_ready_detail_template=config.not_ready_detail_template,
    )

    if not update.needs_update:
        logger.info("No status update needed")
        return update

    logger.info(
        f"Updating KDexFunction status: State={tracked.state} -> {update.state}"
    )
    try:
        patch_function_status(function_resource, name, namespace, update)
    except Exception as e:
        raise OperationError("failed to patch kdex function status", e) from e

    return update


def run(
    command: Command,
    environ: Optional[Mapping[str, str]] = None,
    dyn_client: Optional[DynamicClient] = None,
    stop_event: Optional[threading.Event] = None,
) -> Any:
    """
    Loads the configuration for a command and runs it.

    Configuration errors are raised before any client is created.
    """
    config = load_env(environ, require_image=command is Command.DEPLOY)

    if command is Command.DEPLOY:
        return run_deploy(config, dyn_client, stop_event=stop_event, environ=environ)
    elif command is Command.OBSERVE:
        return run_observe(config, dyn_client)
    else:
        raise ValueError(f"unknown command: {command}")
