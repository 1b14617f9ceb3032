"""Equality-based label selectors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class Selector:
    """An immutable set of ``key=value`` constraints.

    An empty selector matches nothing. Callers that want every object in a
    scope pass ``None`` to the cache instead of an empty selector.
    """

    constraints: frozenset[tuple[str, str]] = frozenset()

    @classmethod
    def from_labels(cls, labels: Mapping[str, str] | None) -> Selector:
        return cls(frozenset((str(k), str(v)) for k, v in (labels or {}).items()))

    @classmethod
    def parse(cls, text: str) -> Selector:
        """Parse ``a=b,c=d``. ``==`` is accepted as a synonym for ``=``."""
        pairs: list[tuple[str, str]] = []
        for term in text.split(","):
            term = term.strip()
            if not term:
                continue
            key, sep, value = term.replace("==", "=").partition("=")
            if not sep or not key.strip():
                raise ValueError(f"invalid selector term: {term!r}")
            pairs.append((key.strip(), value.strip()))
        return cls(frozenset(pairs))

    def is_empty(self) -> bool:
        return not self.constraints

    def matches(self, labels: Mapping[str, str] | None) -> bool:
        if not self.constraints:
            return False
        labels = labels or {}
        return all(labels.get(k) == v for k, v in self.constraints)

    def as_dict(self) -> dict[str, str]:
        return dict(sorted(self.constraints))

    def __str__(self) -> str:
        return ",".join(f"{k}={v}" for k, v in sorted(self.constraints))
