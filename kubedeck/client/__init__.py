"""Cluster API transport for kubedeck.

Submodules:
    base -- ClusterClient contract, ListResult and WatchEvent.
    kube -- KubeClusterClient backed by kubernetes-asyncio.
"""

from kubedeck.client.base import ClusterClient, ListResult, WatchEvent

__all__ = ["ClusterClient", "ListResult", "WatchEvent"]
