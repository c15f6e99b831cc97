"""Errors raised while composing and submitting preview resources."""

from __future__ import annotations


class PreviewError(Exception):
    """Base class for all preview errors.

    This provides a single catch point for the CLI, which reports the message
    and exits with a non-zero status.
    """


class PreviewNameError(PreviewError, ValueError):
    """Raised when an identifier or version tag violates the naming grammar."""

    @classmethod
    def invalid_version(cls, version: str) -> PreviewNameError:
        """Return an error for a version tag outside the grammar."""
        return cls(
            f"Invalid preview version {version!r}: expected a digit followed by "
            "lowercase letters or digits (e.g. '42')"
        )

    @classmethod
    def reserved_origin(cls, name: str) -> PreviewNameError:
        """Return an error for an origin already in the preview namespace."""
        return cls(f"Origin name {name!r} is reserved for preview resources")

    @classmethod
    def empty_origin(cls) -> PreviewNameError:
        """Return an error for an empty origin name."""
        return cls("Origin name must be non-empty")

    @classmethod
    def too_long(cls, name: str, limit: int) -> PreviewNameError:
        """Return an error for a generated name over the Kubernetes limit."""
        return cls(f"Preview name {name!r} exceeds {limit} characters")


class PreviewConfigError(PreviewError, ValueError):
    """Raised when preview configuration is invalid."""

    @classmethod
    def invalid_timeout(cls, raw: str) -> PreviewConfigError:
        """Return an error for an unusable kubectl timeout."""
        return cls(
            f"PREVIEW_KUBECTL_TIMEOUT must be an integer in 1..3600, got {raw!r}"
        )

    @classmethod
    def empty_value(cls, env_var: str) -> PreviewConfigError:
        """Return an error for an environment variable set to a blank value."""
        return cls(f"{env_var} must be non-empty when set")


class PreviewURLError(PreviewError, ValueError):
    """Raised when a preview URL has no usable host."""

    def __init__(self, url: str) -> None:
        """Initialise with the rejected URL."""
        self.url = url
        super().__init__(f"Preview URL {url!r} has no host")


class SelectorNotFoundError(PreviewError):
    """Raised when an origin Service has no usable selector pair."""

    def __init__(self, service: str, key: str | None = None) -> None:
        """Initialise with the Service name and the requested key, if any."""
        self.service = service
        self.key = key
        if key is None:
            message = f"not found selector from service {service}"
        else:
            message = f"not found selector key {key!r} in service {service}"
        super().__init__(message)


class NotFoundError(PreviewError):
    """Raised when a referenced cluster object is absent."""


class OriginNotFoundError(NotFoundError):
    """Raised when the origin Service does not exist."""

    def __init__(self, name: str, namespace: str) -> None:
        """Initialise with the missing Service name and namespace."""
        self.name = name
        self.namespace = namespace
        super().__init__(f"Service {name!r} not found in namespace {namespace!r}")


class WorkloadNotFoundError(NotFoundError):
    """Raised when no Deployment matches the origin selector."""

    def __init__(self, key: str, value: str, namespace: str) -> None:
        """Initialise with the selector pair and namespace that were searched."""
        self.key = key
        self.value = value
        self.namespace = namespace
        super().__init__(
            f"No Deployment with matchLabels {key}={value} in namespace {namespace!r}"
        )


class AlreadyExistsError(PreviewError):
    """Raised when a preview object collides with an existing one."""

    def __init__(self, kind: str, name: str, detail: str = "") -> None:
        """Initialise with the colliding object's kind and name."""
        self.kind = kind
        self.name = name
        message = f"{kind} {name!r} already exists"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class RemoteTransportError(PreviewError):
    """Raised when a registry call fails to list, create, or patch."""

    def __init__(self, operation: str, detail: str) -> None:
        """Initialise with the failed operation and its diagnostic output."""
        self.operation = operation
        self.detail = detail
        super().__init__(f"kubectl {operation} failed: {detail}")

    @classmethod
    def timed_out(cls, operation: str, timeout_s: int) -> RemoteTransportError:
        """Return an error for a kubectl call exceeding its timeout."""
        return cls(operation, f"timed out after {timeout_s}s")

    @classmethod
    def bad_output(cls, operation: str, exc: Exception) -> RemoteTransportError:
        """Return an error for kubectl output that is not a JSON document."""
        return cls(operation, f"unexpected output: {exc}")


class SerializationError(PreviewError):
    """Raised when a manifest cannot be serialized for submission."""

    def __init__(self, name: str, exc: Exception) -> None:
        """Initialise with the manifest name and the encoder's error."""
        self.name = name
        super().__init__(f"Failed to serialize {name!r}: {exc}")


class PreviewStageError(PreviewError):
    """Raised when a stage of preview creation fails.

    Attributes
    ----------
    stage
        Name of the stage that failed.
    cause
        The underlying error, also available as ``__cause__``.

    """

    def __init__(self, stage: str, cause: Exception) -> None:
        """Initialise with the failing stage and the original error."""
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: {cause}")


__all__ = [
    "AlreadyExistsError",
    "NotFoundError",
    "OriginNotFoundError",
    "PreviewConfigError",
    "PreviewError",
    "PreviewNameError",
    "PreviewStageError",
    "PreviewURLError",
    "RemoteTransportError",
    "SelectorNotFoundError",
    "SerializationError",
    "WorkloadNotFoundError",
]
