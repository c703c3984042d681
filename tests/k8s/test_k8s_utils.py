from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic.exceptions import DynamicApiError, NotFoundError

import knfunc.k8s.utils
from knfunc.errors import ClusterConnectionError
from knfunc.k8s.utils import (
    get_dynamic_client,
    is_not_found,
    load_kubeconfig,
    patch_namespaced_status,
    read_namespaced_object,
    server_side_apply,
    to_dict,
)


def test_is_not_found() -> None:
    assert is_not_found(ApiException(status=404))
    assert is_not_found(NotFoundError(ApiException(status=404)))
    assert not is_not_found(ApiException(status=500))
    assert not is_not_found(DynamicApiError(ApiException(status=403)))
    assert not is_not_found(ValueError("404"))


def test_load_kubeconfig_in_cluster() -> None:
    with patch.object(knfunc.k8s.utils, "k8s_config") as mock_config:
        load_kubeconfig()

        mock_config.load_incluster_config.assert_called_once_with()
        mock_config.load_kube_config.assert_not_called()


def test_load_kubeconfig_falls_back_to_kubeconfig() -> None:
    with patch.object(knfunc.k8s.utils, "k8s_config") as mock_config:
        mock_config.load_incluster_config.side_effect = ConfigException("no sa")

        load_kubeconfig()

        mock_config.load_kube_config.assert_called_once_with()


def test_load_kubeconfig_fails() -> None:
    with patch.object(knfunc.k8s.utils, "k8s_config") as mock_config:
        mock_config.load_incluster_config.side_effect = ConfigException("no sa")
        mock_config.load_kube_config.side_effect = ConfigException("no config")

        with pytest.raises(
            ClusterConnectionError, match="failed to load cluster config"
        ):
            load_kubeconfig()


def test_get_dynamic_client_discovery_failure() -> None:
    with patch.object(knfunc.k8s.utils, "load_kubeconfig"), patch.object(
        knfunc.k8s.utils, "DynamicClient"
    ) as mock_dynamic_client:
        mock_dynamic_client.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(ClusterConnectionError, match="dynamic client"):
            get_dynamic_client()


def test_to_dict() -> None:
    instance = MagicMock()
    instance.to_dict.return_value = {"a": 1}

    assert to_dict(instance) == {"a": 1}
    assert to_dict({"b": 2}) == {"b": 2}
    assert to_dict(None) == {}


def test_read_namespaced_object() -> None:
    resource = MagicMock()
    resource.get.return_value.to_dict.return_value = {"metadata": {"name": "x"}}

    assert read_namespaced_object(resource, "x", "ns") == {"metadata": {"name": "x"}}
    resource.get.assert_called_once_with(name="x", namespace="ns")


def test_server_side_apply() -> None:
    dyn_client = MagicMock()
    resource = MagicMock()
    body = {"metadata": {"name": "x", "namespace": "ns"}}

    server_side_apply(dyn_client, resource, body, field_manager="manager")

    dyn_client.server_side_apply.assert_called_once_with(
        resource,
        body=body,
        name="x",
        namespace="ns",
        field_manager="manager",
        force_conflicts=True,
    )


def test_patch_namespaced_status() -> None:
    resource = MagicMock()
    body = {"status": {"state": "Ready"}}

    patch_namespaced_status(resource, "x", "ns", body, field_manager="manager")

    resource.status.patch.assert_called_once_with(
        body=body,
        name="x",
        namespace="ns",
        content_type="application/merge-patch+json",
        field_manager="manager",
    )
