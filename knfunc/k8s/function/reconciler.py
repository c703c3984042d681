from __future__ import annotations

from typing import Any, Dict, Mapping, NamedTuple

from knfunc.constants import (
    KDEX_FUNCTION_API_VERSION,
    KDEX_FUNCTION_KIND,
    NOT_READY_DETAIL_TEMPLATE,
    OBSERVER_FIELD_MANAGER,
    READY_DETAIL_TEMPLATE,
    STATE_FUNCTION_DEPLOYED,
    STATE_READY,
)
from knfunc.k8s.function.status import ServiceStatus
from knfunc.k8s.utils import get_resource, patch_namespaced_status


class TrackedStatus(NamedTuple):
    state: str
    url: str

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> TrackedStatus:
        status = obj.get("status")
        if not isinstance(status, Mapping):
            status = {}
        state = status.get("state")
        url = status.get("url")
        return cls(
            state if isinstance(state, str) else "",
            url if isinstance(url, str) else "",
        )


class StatusUpdate(NamedTuple):
    needs_update: bool
    state: str
    detail: str
    url: str

    def to_patch(self) -> Dict[str, Any]:
        """
        Returns the merge patch for the status subresource.

        Only state, url and, when there is one, detail are set, so every other
        status field is left alone.
        """
        status = {"state": self.state, "url": self.url}
        if self.detail:
            status["detail"] = self.detail
        return {"status": status}


def reconcile_status(
    observed: ServiceStatus,
    tracked: TrackedStatus,
    base_path: str = "",
    ready_detail_template: str = READY_DETAIL_TEMPLATE,
    not_ready_detail_template: str = NOT_READY_DETAIL_TEMPLATE,
) -> StatusUpdate:
    """
    Decides how the tracked function status should follow the service status.

    A service that becomes ready moves the function to Ready, and a change of
    URL is always synced. A function that was Ready and whose service is no
    longer ready is moved back to FunctionDeployed. Any other not-ready
    observation is ignored, so transient failures before the function was
    ever ready do not flap the status.

    Args:
        observed (ServiceStatus): The interpreted Knative Service status.
        tracked (TrackedStatus): The current KDexFunction status.
        base_path (str, optional): The function base path, available to the
            detail templates as {base_path}.
        ready_detail_template (str, optional): Detail written when the function
            becomes ready.
        not_ready_detail_template (str, optional): Detail written when a ready
            function degrades.

    Returns:
        StatusUpdate: The new status, with needs_update False when nothing has
        to be written.
    """
    fields = {"url": observed.url, "base_path": base_path, "reason": observed.reason}

    needs_update = False
    state = tracked.state
    detail = ""

    if observed.ready:
        if tracked.state != STATE_READY:
            state = STATE_READY
            detail = ready_detail_template.format(**fields)
            needs_update = True
        if tracked.url != observed.url:
            needs_update = True
    elif tracked.state == STATE_READY:
        state = STATE_FUNCTION_DEPLOYED
        detail = not_ready_detail_template.format(**fields)
        needs_update = True

    return StatusUpdate(needs_update, state, detail, observed.url)


def get_kdex_function_resource(dyn_client: Any) -> Any:
    return get_resource(dyn_client, KDEX_FUNCTION_API_VERSION, KDEX_FUNCTION_KIND)


def patch_function_status(
    function_resource: Any, name: str, namespace: str, update: StatusUpdate
) -> Any:
    return patch_namespaced_status(
        function_resource,
        name,
        namespace,
        update.to_patch(),
        field_manager=OBSERVER_FIELD_MANAGER,
    )
