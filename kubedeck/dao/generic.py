"""Accessor for resource kinds with no dedicated behaviour."""

from __future__ import annotations

from kubedeck.dao.accessor import Accessor


class Generic(Accessor):
    """Baseline get / list / delete only."""
