from __future__ import annotations

from typing import Any, Mapping, NamedTuple


class ServiceStatus(NamedTuple):
    ready: bool
    reason: str
    url: str


def parse_knative_status(obj: Mapping[str, Any]) -> ServiceStatus:
    """
    Interprets the status of a Knative Service.

    Only the first condition of type "Ready" is looked at. Entries that do not
    have the expected shape are skipped instead of raising.

    Args:
        obj (Mapping[str, Any]): The Service as a plain dict.

    Returns:
        ServiceStatus: Whether the service is ready, why not if it isn't, and
        the URL it is served on (empty if not known yet).
    """
    status = obj.get("status")
    if not isinstance(status, Mapping):
        return ServiceStatus(False, "No status", "")

    url = status.get("url")
    if not isinstance(url, str):
        url = ""

    conditions = status.get("conditions")
    if not isinstance(conditions, list):
        return ServiceStatus(False, "No conditions", url)

    for condition in conditions:
        if not isinstance(condition, Mapping):
            continue
        if condition.get("type") != "Ready":
            continue
        if condition.get("status") == "True":
            return ServiceStatus(True, "", url)
        message = condition.get("message")
        return ServiceStatus(False, "" if message is None else str(message), url)

    return ServiceStatus(False, "Ready condition not found", url)
