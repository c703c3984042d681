from __future__ import annotations

import threading
from typing import Any, Optional

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from knfunc.constants import READY_POLL_INTERVAL_SECONDS, READY_TIMEOUT_SECONDS
from knfunc.errors import ReadinessTimeoutError, WaitCancelledError
from knfunc.k8s.function.status import ServiceStatus, parse_knative_status
from knfunc.k8s.utils import is_not_found, read_namespaced_object
from knfunc.logger import logger


def wait_for_ready(
    service_resource: Any,
    name: str,
    namespace: str,
    timeout: float = READY_TIMEOUT_SECONDS,
    poll_interval: float = READY_POLL_INTERVAL_SECONDS,
    stop_event: Optional[threading.Event] = None,
) -> str:
    """
    Polls a Knative Service until it reports Ready.

    The service is read at a fixed interval. A service that is not ready yet,
    or that cannot be found yet because it is still being created, is polled
    again. Any other read error ends the wait straight away.

    Setting stop_event cancels the wait at the next tick. A read that is
    already in flight is allowed to finish.

    Args:
        service_resource (Any): The dynamic API resource for Knative Services.
        name (str): The name of the service.
        namespace (str): The namespace of the service.
        timeout (float, optional): How long to wait, in seconds. Defaults to 5 minutes.
        poll_interval (float, optional): Seconds between reads. Defaults to 2.
        stop_event (Optional[threading.Event], optional): Cancels the wait when set.

    Returns:
        str: The URL of the ready service.

    Raises:
        ReadinessTimeoutError: If the service is not ready before the timeout.
        WaitCancelledError: If stop_event is set while waiting.
        ApiException: If reading the service fails for any reason other than
            the service not existing.
    """
    if stop_event is None:
        stop_event = threading.Event()

    def read_status() -> ServiceStatus:
        if stop_event.is_set():
            raise WaitCancelledError("cancelled while waiting for service readiness")
        obj = read_namespaced_object(service_resource, name, namespace)
        return parse_knative_status(obj)

    def sleep(seconds: float) -> None:
        if stop_event.wait(seconds):
            raise WaitCancelledError("cancelled while waiting for service readiness")

    def log_attempt(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is None:
            return
        if outcome.failed:
            logger.debug(f"Knative Service {namespace}/{name} not found yet")
            return
        reason = outcome.result().reason
        if reason:
            logger.info(f"Waiting... (Reason: {reason})")

    retrying = Retrying(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(poll_interval),
        retry=(
            retry_if_exception(is_not_found)
            | retry_if_result(lambda status: not status.ready)
        ),
        before_sleep=log_attempt,
        sleep=sleep,
    )

    try:
        status = retrying(read_status)
    except RetryError as e:
        raise ReadinessTimeoutError("timeout waiting for service readiness") from e

    return status.url
