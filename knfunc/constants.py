# The name of the project
PROJECT_NAME = "knfunc"

# Knative Service coordinates
KNATIVE_SERVICE_API_VERSION = "serving.knative.dev/v1"
KNATIVE_SERVICE_KIND = "Service"

# The custom resource that tracks the deployed function
KDEX_FUNCTION_API_VERSION = "kdex.dev/v1alpha1"
KDEX_FUNCTION_KIND = "KDexFunction"

# Labels stamped on the service and its revision template
FUNCTION_LABEL = "kdex.dev/function"
GENERATION_LABEL = "kdex.dev/generation"

# Prefix of the Knative autoscaling annotations
AUTOSCALING_ANNOTATION_PREFIX = "autoscaling.knative.dev"

# Field managers used for server-side apply and status patches
DEPLOYER_FIELD_MANAGER = "kdex-knative-deployer"
OBSERVER_FIELD_MANAGER = "kdex-knative-observer"

# States written to the KDexFunction status
STATE_READY = "Ready"
STATE_FUNCTION_DEPLOYED = "FunctionDeployed"

# Readiness polling
READY_TIMEOUT_SECONDS = 5 * 60
READY_POLL_INTERVAL_SECONDS = 2

# Where Kubernetes picks up the container termination message
DEFAULT_TERMINATION_LOG_PATH = "/dev/termination-log"

# Status detail templates. Available fields: url, base_path, reason
READY_DETAIL_TEMPLATE = "Ready: {url}{base_path}"
NOT_READY_DETAIL_TEMPLATE = "NotReady: {reason}"
