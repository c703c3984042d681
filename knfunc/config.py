from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from knfunc.constants import (
    DEFAULT_TERMINATION_LOG_PATH,
    NOT_READY_DETAIL_TEMPLATE,
    READY_DETAIL_TEMPLATE,
)
from knfunc.errors import ConfigError


class KnfuncBaseModel(BaseModel):
    # Populated straight from the process environment, so anything we do not
    # know about is ignored. Defaults are validated too: an unset required
    # variable must fail the same way an empty one does.
    model_config = ConfigDict(
        extra="ignore", populate_by_name=True, validate_default=True
    )


class FunctionConfig(KnfuncBaseModel):
    """
    Represents the function to deploy or observe, as described by environment
    variables.

    Every value is an opaque string. Empty values mean "not set"; scaling knobs
    that are not set are left out of the applied service so that Knative falls
    back to its own defaults.
    """

    # Identity
    function_name: str = Field(
        "", alias="FUNCTION_NAME", description="The name of the function."
    )
    function_namespace: str = Field(
        "",
        alias="FUNCTION_NAMESPACE",
        description="The namespace the function lives in.",
    )
    function_generation: str = Field(
        "",
        alias="FUNCTION_GENERATION",
        description="The generation of the KDexFunction that triggered the run.",
    )
    function_host: str = Field(
        "", alias="FUNCTION_HOST", description="The host the function is served on."
    )
    function_base_path: str = Field(
        "",
        alias="FUNCTION_BASEPATH",
        description="The base path the function is served under.",
    )

    # Deployment
    function_image: str = Field(
        "", alias="FUNCTION_IMAGE", description="The container image to run."
    )
    forwarded_env_vars: str = Field(
        "",
        alias="FORWARDED_ENV_VARS",
        description="Comma separated names of variables passed to the container.",
    )

    # Consumed by the deployed workload
    audience: str = Field("", alias="AUDIENCE")
    issuer: str = Field("", alias="ISSUER")
    jwks_url: str = Field("", alias="JWKS_URL")

    # Knative autoscaling knobs
    scaling_activation_scale: str = Field("", alias="SCALING_ACTIVATION_SCALE")
    scaling_initial_scale: str = Field("", alias="SCALING_INITIAL_SCALE")
    scaling_max_scale: str = Field("", alias="SCALING_MAX_SCALE")
    scaling_metric: str = Field("", alias="SCALING_METRIC")
    scaling_min_scale: str = Field("", alias="SCALING_MIN_SCALE")
    scaling_panic_threshold_percentage: str = Field(
        "", alias="SCALING_PANIC_THRESHOLD_PERCENTAGE"
    )
    scaling_panic_window_percentage: str = Field(
        "", alias="SCALING_PANIC_WINDOW_PERCENTAGE"
    )
    scaling_scale_down_delay: str = Field("", alias="SCALING_SCALE_DOWN_DELAY")
    scaling_scale_to_zero_pod_retention_period: str = Field(
        "", alias="SCALING_SCALE_TO_ZERO_POD_RETENTION_PERIOD"
    )
    scaling_stable_window: str = Field("", alias="SCALING_STABLE_WINDOW")
    scaling_target: str = Field("", alias="SCALING_TARGET")
    scaling_target_utilization_percentage: str = Field(
        "", alias="SCALING_TARGET_UTILIZATION_PERCENTAGE"
    )

    # Outputs
    termination_log_path: str = Field(
        "",
        alias="TERMINATION_LOG_PATH",
        description="Where the deploy result is written.",
    )
    ready_detail_template: str = Field("", alias="READY_DETAIL_TEMPLATE")
    not_ready_detail_template: str = Field("", alias="NOT_READY_DETAIL_TEMPLATE")

    @field_validator("function_name")
    def validate_function_name(cls, v: str) -> str:
        if not v:
            raise ValueError("FUNCTION_NAME is required")
        return v

    @field_validator("function_namespace")
    def validate_function_namespace(cls, v: str) -> str:
        if not v:
            raise ValueError("FUNCTION_NAMESPACE is required")
        return v

    @field_validator("termination_log_path")
    def default_termination_log_path(cls, v: str) -> str:
        return v or DEFAULT_TERMINATION_LOG_PATH

    @field_validator("ready_detail_template")
    def validate_ready_detail_template(cls, v: str) -> str:
        return validate_detail_template(v or READY_DETAIL_TEMPLATE)

    @field_validator("not_ready_detail_template")
    def validate_not_ready_detail_template(cls, v: str) -> str:
        return validate_detail_template(v or NOT_READY_DETAIL_TEMPLATE)


def validate_detail_template(v: str) -> str:
    """
    Validates a status detail template.

    Templates are str.format strings and may only use the url, base_path and
    reason fields.

    Raises:
        ValueError: If the template uses any other field or is malformed.
    """
    try:
        v.format(url="", base_path="", reason="")
    except (KeyError, IndexError, ValueError, AttributeError, TypeError) as e:
        raise ValueError(f"Invalid detail template {v!r}: {e}")
    return v


def _first_error_message(e: ValidationError) -> str:
    error = e.errors()[0]
    ctx = error.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    return error["msg"]


def load_env(
    environ: Optional[Mapping[str, str]] = None, require_image: bool = False
) -> FunctionConfig:
    """
    Loads the function configuration from environment variables.

    Args:
        environ (Optional[Mapping[str, str]]): The variables to read. Defaults to
            the process environment.
        require_image (bool): Whether FUNCTION_IMAGE must be set. Only deploy
            needs an image.

    Returns:
        FunctionConfig: The validated configuration.

    Raises:
        ConfigError: If a required variable is missing or empty.
    """
    if environ is None:
        environ = os.environ

    # Only the upper case variable names are read, never the field names.
    aliases = [field.alias for field in FunctionConfig.model_fields.values()]
    values = {alias: environ[alias] for alias in aliases if alias in environ}

    try:
        config = FunctionConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(_first_error_message(e)) from e

    if require_image and not config.function_image:
        raise ConfigError("FUNCTION_IMAGE is required for deploy")

    return config
