"""Watch-backed cache layer.

Submodules:
    informer -- Informer: list/watch worker, backoff, staleness, copy-then-swap cache partition.
    factory  -- Factory: informer registry, cache reads, uncached mutation forwarding.
"""

from kubedeck.watch.factory import Factory, Verb
from kubedeck.watch.informer import Informer

__all__ = ["Factory", "Informer", "Verb"]
