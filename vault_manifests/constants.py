"""Shared constants for vault-manifests."""

APP_NAME = "vault-manifests"
APP_VERSION = "0.1.0"

# Annotations read from manifests
AVP_IGNORE_ANNOTATION = "avp.kubernetes.io/ignore"
AVP_PATH_ANNOTATION = "avp.kubernetes.io/path"
AVP_SECRET_VERSION_ANNOTATION = "avp.kubernetes.io/secret-version"

# Output stream
DOCUMENT_SEPARATOR = "---"

# Discovery
STDIN_SOURCE = "-"
MANIFEST_EXTENSIONS = frozenset({".yaml", ".yml", ".json"})

# Secret directory marker resolved against the repository root
GIT_ROOT_MARKER = "GIT_ROOT"

# Environment variables read once per run
ENV_BACKEND_TYPE = "AVP_TYPE"
ENV_AUTH_TYPE = "AVP_AUTH_TYPE"
ENV_VAULT_ADDR = "VAULT_ADDR"
ENV_VAULT_TOKEN = "VAULT_TOKEN"
ENV_ROLE_ID = "AVP_ROLE_ID"
ENV_SECRET_ID = "AVP_SECRET_ID"
ENV_KV_VERSION = "AVP_KV_VERSION"
ENV_MOUNT_PATH = "AVP_MOUNT_PATH"
ENV_SECRETS_FILE = "AVP_SECRETS_FILE"
ENV_SECRET_KEY = "AVP_SECRET_KEY"
ENV_PATH_VALIDATION = "AVP_PATH_VALIDATION"
ENV_SECRET_DIR = "AVP_SECRET_DIR"
ENV_VERBOSE = "AVP_VERBOSE"

# Prefix for the environment variable backend
ENV_SECRET_PREFIX = "SECRET_"

# Logging defaults
DEFAULT_LOG_LEVEL = "WARNING"
