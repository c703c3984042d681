import threading
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic.exceptions import NotFoundError

from knfunc.errors import ReadinessTimeoutError, WaitCancelledError
from knfunc.k8s.function.readiness import wait_for_ready


def service(
    ready: bool, url: str = "http://myurl", message: str = ""
) -> Dict[str, Any]:
    condition = {"type": "Ready", "status": "True" if ready else "False"}
    if message:
        condition["message"] = message
    return {"status": {"url": url, "conditions": [condition]}}


def make_resource(results: List[Any]) -> MagicMock:
    resource = MagicMock()
    resource.get.side_effect = results
    return resource


def not_found() -> NotFoundError:
    return NotFoundError(ApiException(status=404))


def test_returns_url_when_ready() -> None:
    resource = make_resource([service(True)])

    url = wait_for_ready(resource, "myfunc", "myns", timeout=5, poll_interval=0)

    assert url == "http://myurl"
    resource.get.assert_called_once_with(name="myfunc", namespace="myns")


def test_polls_until_ready() -> None:
    resource = make_resource(
        [
            not_found(),
            service(False, message="RevisionMissing"),
            {"status": {}},
            service(True, url="http://done"),
        ]
    )

    url = wait_for_ready(resource, "myfunc", "myns", timeout=5, poll_interval=0)

    assert url == "http://done"
    assert resource.get.call_count == 4


def test_not_found_until_timeout() -> None:
    def get(**kwargs: Any) -> Dict[str, Any]:
        raise not_found()

    resource = MagicMock()
    resource.get.side_effect = get

    with pytest.raises(ReadinessTimeoutError, match="timeout"):
        wait_for_ready(resource, "myfunc", "myns", timeout=0.05, poll_interval=0.01)

    assert resource.get.call_count >= 1


def test_not_ready_until_timeout() -> None:
    resource = MagicMock()
    resource.get.return_value = service(False, message="still starting")

    with pytest.raises(ReadinessTimeoutError):
        wait_for_ready(resource, "myfunc", "myns", timeout=0.05, poll_interval=0.01)


def test_other_errors_are_not_retried() -> None:
    resource = make_resource([ApiException(status=403), service(True)])

    with pytest.raises(ApiException) as excinfo:
        wait_for_ready(resource, "myfunc", "myns", timeout=5, poll_interval=0)

    assert excinfo.value.status == 403
    assert resource.get.call_count == 1


def test_cancelled_before_first_read() -> None:
    resource = MagicMock()
    stop_event = threading.Event()
    stop_event.set()

    with pytest.raises(WaitCancelledError):
        wait_for_ready(resource, "myfunc", "myns", timeout=5, stop_event=stop_event)

    resource.get.assert_not_called()


def test_cancelled_while_waiting() -> None:
    stop_event = threading.Event()

    def get(**kwargs: Any) -> Dict[str, Any]:
        # Cancel while the first read is in flight, the read still completes.
        stop_event.set()
        return service(False)

    resource = MagicMock()
    resource.get.side_effect = get

    with pytest.raises(WaitCancelledError):
        wait_for_ready(
            resource,
            "myfunc",
            "myns",
            timeout=60,
            poll_interval=30,
            stop_event=stop_event,
        )

    assert resource.get.call_count == 1


def test_cancellation_is_not_a_timeout() -> None:
    stop_event = threading.Event()
    stop_event.set()

    with pytest.raises(WaitCancelledError) as excinfo:
        wait_for_ready(MagicMock(), "myfunc", "myns", stop_event=stop_event)

    assert not isinstance(excinfo.value, TimeoutError)
