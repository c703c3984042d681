from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional

from kubernetes.dynamic import DynamicClient  # type: ignore

from knfunc.config import FunctionConfig
from knfunc.constants import (
    AUTOSCALING_ANNOTATION_PREFIX,
    DEPLOYER_FIELD_MANAGER,
    FUNCTION_LABEL,
    GENERATION_LABEL,
    KNATIVE_SERVICE_API_VERSION,
    KNATIVE_SERVICE_KIND,
)
from knfunc.k8s.utils import get_resource, server_side_apply
from knfunc.logger import logger
from knfunc.utils import split_names

# Config field -> Knative autoscaling annotation key
SCALING_ANNOTATIONS = {
    "scaling_activation_scale": "activation-scale",
    "scaling_initial_scale": "initial-scale",
    "scaling_max_scale": "max-scale",
    "scaling_metric": "metric",
    "scaling_min_scale": "min-scale",
    "scaling_panic_threshold_percentage": "panic-threshold-percentage",
    "scaling_panic_window_percentage": "panic-window-percentage",
    "scaling_scale_down_delay": "scale-down-delay",
    "scaling_scale_to_zero_pod_retention_period": "scale-to-zero-pod-retention-period",
    "scaling_target": "target",
    "scaling_target_utilization_percentage": "target-utilization-percentage",
    "scaling_stable_window": "window",
}


def resolve_forwarded_envs(
    names: str, environ: Optional[Mapping[str, str]] = None
) -> List[Dict[str, str]]:
    """
    Resolves the forwarded variable names into container env entries.

    Names are trimmed and blank names skipped. A variable that is not set
    resolves to an empty string rather than being dropped.

    Args:
        names (str): Comma separated variable names.
        environ (Optional[Mapping[str, str]]): Where to look the values up.
            Defaults to the process environment.

    Returns:
        List[Dict[str, str]]: The env entries, in the order the names were given.
    """
    if environ is None:
        environ = os.environ

    return [
        {"name": name, "value": environ.get(name, "")} for name in split_names(names)
    ]


def build_scaling_annotations(config: FunctionConfig) -> Dict[str, str]:
    # Values are not validated here, Knative rejects what it does not accept.
    annotations = {}
    for field, key in SCALING_ANNOTATIONS.items():
        value = getattr(config, field)
        if value:
            annotations[f"{AUTOSCALING_ANNOTATION_PREFIX}/{key}"] = value
    return annotations


def build_knative_service(
    config: FunctionConfig, environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """
    Builds the Knative Service document for a function.

    The document is rebuilt from scratch on every deploy and depends only on
    the configuration and the forwarded variables, so applying it repeatedly
    is a no-op.

    Args:
        config (FunctionConfig): The function configuration.
        environ (Optional[Mapping[str, str]]): Where forwarded variables are
            resolved. Defaults to the process environment.

    Returns:
        Dict[str, Any]: The Service document.
    """
    labels = {
        FUNCTION_LABEL: config.function_name,
        GENERATION_LABEL: config.function_generation,
    }

    container = {
        "image": config.function_image,
        "env": resolve_forwarded_envs(config.forwarded_env_vars, environ),
    }

    metadata: Dict[str, Any] = {
        "name": config.function_name,
        "namespace": config.function_namespace,
        "labels": labels,
    }
    template_metadata: Dict[str, Any] = {"labels": dict(labels)}

    # Knative reads autoscaling settings from the revision template; the
    # service keeps a copy so both carry the same annotations.
    annotations = build_scaling_annotations(config)
    if annotations:
        metadata["annotations"] = annotations
        template_metadata["annotations"] = dict(annotations)

    return {
        "apiVersion": KNATIVE_SERVICE_API_VERSION,
        "kind": KNATIVE_SERVICE_KIND,
        "metadata": metadata,
        "spec": {
            "template": {
                "metadata": template_metadata,
                "spec": {"containers": [container]},
            }
        },
    }


def get_knative_service_resource(dyn_client: DynamicClient) -> Any:
    return get_resource(dyn_client, KNATIVE_SERVICE_API_VERSION, KNATIVE_SERVICE_KIND)


def apply_knative_service(
    dyn_client: DynamicClient, knative_service: Dict[str, Any]
) -> Any:
    """
    Applies the Knative Service with server-side apply, forcing ownership of
    the fields we manage.

    Args:
        dyn_client (DynamicClient): The client to apply with.
        knative_service (Dict[str, Any]): The document from build_knative_service.

    Returns:
        Any: The applied Service.
    """
    service_resource = get_knative_service_resource(dyn_client)
    applied = server_side_apply(
        dyn_client,
        service_resource,
        knative_service,
        field_manager=DEPLOYER_FIELD_MANAGER,
    )

    metadata = knative_service["metadata"]
    logger.info(
        f"Knative Service {metadata['namespace']}/{metadata['name']} applied successfully"
    )
    return applied
