"""
Defines project-specific exception classes.
"""
from typing import Optional


class VaultManifestsError(Exception):
    """Base class for all custom exceptions in vault-manifests."""
    pass


class ConfigurationError(VaultManifestsError):
    """Raised when loading or validating the run configuration fails."""
    pass


class DiscoveryError(VaultManifestsError):
    """Raised when no manifests can be found or read from the source."""
    pass


class BackendLoginError(VaultManifestsError):
    """Raised when a secret backend fails to authenticate."""

    def __init__(self,
                 message: str,
                 backend_type: Optional[str] = None,
                 orig_exc: Optional[Exception] = None):
        self.backend_type = backend_type
        self.orig_exc = orig_exc

        full_msg = "Backend login failed"
        if backend_type:
            full_msg += f" (backend: {backend_type})"
        full_msg += f": {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


class TemplateError(VaultManifestsError):
    """Raised when placeholder substitution in a manifest fails."""
    pass


class SecretLookupError(TemplateError):
    """Raised when a secret path or key cannot be retrieved from a backend."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class MalformedPlaceholderError(TemplateError):
    """Raised when a placeholder does not follow the supported syntax."""

    def __init__(self, placeholder: str, reason: str):
        self.placeholder = placeholder
        super().__init__(f"malformed placeholder '{placeholder}': {reason}")


class PathValidationError(TemplateError):
    """Raised when a secret path is rejected by the path validation pattern."""

    def __init__(self, path: str, pattern: str):
        self.path = path
        self.pattern = pattern
        super().__init__(
            f"the path {path} is disallowed by AVP_PATH_VALIDATION restriction "
            f"'{pattern}'"
        )
