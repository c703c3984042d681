from __future__ import annotations

from typing import Any, Dict, Mapping

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic import DynamicClient  # type: ignore
from kubernetes.dynamic.exceptions import DynamicApiError  # type: ignore

from knfunc.errors import ClusterConnectionError
from knfunc.logger import logger


def load_kubeconfig() -> None:
    """
    Loads the configuration for talking to the Kubernetes API server.

    The in-cluster service account is used when running inside a pod. Outside
    of a cluster the local kubeconfig is used instead.

    Raises:
        ClusterConnectionError: If neither configuration can be loaded.
    """
    try:
        k8s_config.load_incluster_config()
        return
    except ConfigException as e:
        logger.debug(f"In-cluster config not available: {e}")

    try:
        k8s_config.load_kube_config()
    except (ConfigException, OSError) as e:
        raise ClusterConnectionError(f"failed to load cluster config: {e}") from e


def get_dynamic_client() -> DynamicClient:
    """
    Creates a dynamic client for the current cluster.

    Returns:
        DynamicClient: The client.

    Raises:
        ClusterConnectionError: If the configuration cannot be loaded or the
            API server cannot be reached for discovery.
    """
    load_kubeconfig()
    try:
        return DynamicClient(client.ApiClient())
    except Exception as e:
        raise ClusterConnectionError(f"failed to create dynamic client: {e}") from e


def get_resource(dyn_client: DynamicClient, api_version: str, kind: str) -> Any:
    return dyn_client.resources.get(api_version=api_version, kind=kind)


def is_not_found(e: BaseException) -> bool:
    """
    Tells whether an API error means the object does not exist.

    Both raw ApiException and the dynamic client's wrapped errors are
    recognised.
    """
    if isinstance(e, (ApiException, DynamicApiError)):
        return getattr(e, "status", None) == 404
    return False


def to_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def read_namespaced_object(resource: Any, name: str, namespace: str) -> Dict[str, Any]:
    """
    Reads an object and returns it as a plain dict.

    Raises:
        ApiException: If the read fails. Use is_not_found to tell a missing
            object apart from other failures.
    """
    return to_dict(resource.get(name=name, namespace=namespace))


def server_side_apply(
    dyn_client: DynamicClient,
    resource: Any,
    body: Mapping[str, Any],
    field_manager: str,
    force: bool = True,
) -> Any:
    """
    Applies a document with server-side apply.

    With force set, conflicts on fields owned by other managers are resolved in
    our favour, so the last writer wins. Applying the same document twice
    leaves the object unchanged.

    Args:
        dyn_client (DynamicClient): The client to apply with.
        resource (Any): The API resource of the document's kind.
        body (Mapping[str, Any]): The full desired document.
        field_manager (str): The field manager that owns the applied fields.
        force (bool, optional): Whether to force ownership. Defaults to True.

    Returns:
        Any: The applied object.
    """
    metadata = body["metadata"]
    return dyn_client.server_side_apply(
        resource,
        body=dict(body),
        name=metadata["name"],
        namespace=metadata["namespace"],
        field_manager=field_manager,
        force_conflicts=force,
    )


def patch_namespaced_status(
    resource: Any,
    name: str,
    namespace: str,
    body: Mapping[str, Any],
    field_manager: str,
) -> Any:
    """
    Merge-patches the status subresource of an object.

    Only the fields present in body are changed.
    """
    return resource.status.patch(
        body=dict(body),
        name=name,
        namespace=namespace,
        content_type="application/merge-patch+json",
        field_manager=field_manager,
    )
