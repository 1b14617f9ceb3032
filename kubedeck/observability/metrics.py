"""Prometheus metrics for the cache, log tailing and mutation paths."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

watch_events_total = Counter(
    "kubedeck_watch_events_total",
    "Watch events applied to an informer cache",
    ["resource", "type"],
)

watch_failures_total = Counter(
    "kubedeck_watch_failures_total",
    "Failed informer list/watch subscriptions",
    ["resource"],
)

cache_stale = Gauge(
    "kubedeck_cache_stale",
    "1 when an informer scope reached its resubscribe-failure threshold",
    ["scope"],
)

log_stream_errors_total = Counter(
    "kubedeck_log_stream_errors_total",
    "Per-container log streams that ended with an error",
)

mutations_total = Counter(
    "kubedeck_mutations_total",
    "Mutating calls forwarded to the cluster API",
    ["verb", "resource", "outcome"],
)
