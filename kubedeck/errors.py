"""Error taxonomy shared by the cache, accessor and log-tailing layers.

Capability operations surface these unmodified to the caller. Only
``TransportError`` raised inside a watch worker is retried internally.
"""

from __future__ import annotations


class KubedeckError(Exception):
    """Root of every error raised by kubedeck."""


class NotFoundError(KubedeckError):
    """The object is absent from the current cache."""

    def __init__(self, resource: str, path: str) -> None:
        super().__init__(f"{resource} {path!r} not found")
        self.resource = resource
        self.path = path


class ForbiddenError(KubedeckError):
    """The authorization gate denied the operation."""

    def __init__(self, verb: str, resource: str, namespace: str = "") -> None:
        where = f" in namespace {namespace!r}" if namespace else ""
        super().__init__(f"not authorized to {verb} {resource}{where}")
        self.verb = verb
        self.resource = resource
        self.namespace = namespace


class NoSelectorError(KubedeckError):
    """The target defines no usable label selector."""

    def __init__(self, resource: str, path: str) -> None:
        super().__init__(f"no valid selector found on {resource} {path!r}")
        self.resource = resource
        self.path = path


class DecodeError(KubedeckError):
    """A cached object could not be converted to the kind's typed shape."""


class TransportError(KubedeckError):
    """Failure of the underlying API transport.

    ``status`` carries the HTTP status code when the API server answered,
    and is None for connection-level failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def is_gone(self) -> bool:
        """True when the server expired the requested resourceVersion (HTTP 410)."""
        return self.status == 410


class StaleCacheError(KubedeckError):
    """Warning-grade condition: a cache reached its resubscribe-failure threshold.

    Reads never raise this; it is available to callers that want to turn
    ``Factory.is_stale()`` into an exception.
    """


class RestartNotSupportedError(KubedeckError):
    """The object cannot be rolled out in its current configuration."""


class SinkClosedError(KubedeckError):
    """A producer tried to write to a closed log sink."""
