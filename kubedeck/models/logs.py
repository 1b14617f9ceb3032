"""Log tail requests and the events a log sink carries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class LogOptions:
    """Options for one tail invocation.

    ``path`` is the FQN of the object being tailed. ``multi_pods`` is set by
    the aggregator when more than one pod is streamed.
    """

    path: str = ""
    container: str | None = None
    since_seconds: int | None = None
    tail_lines: int | None = None
    previous: bool = False
    timestamps: bool = False
    multi_pods: bool = False


@dataclass(frozen=True)
class LogItem:
    """One log line from one container."""

    pod: str
    container: str
    line: str
    multi_pods: bool = False
    received_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def render(self) -> str:
        """The line as shown to the user, prefixed with its origin when multiplexed."""
        if self.multi_pods:
            return f"{self.pod}:{self.container} {self.line}"
        return self.line


@dataclass(frozen=True)
class LogError:
    """A stream failure attributable to one pod container."""

    pod: str
    container: str
    error: Exception
    received_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def render(self) -> str:
        return f"{self.pod}:{self.container} log stream failed: {self.error}"


LogEvent = LogItem | LogError
