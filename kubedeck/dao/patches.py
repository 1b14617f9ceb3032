"""Rollout-restart patch construction.

A restart stamps the current time into the pod template annotations; the
controller sees a template change and recreates its pods. The patch only
carries that one field.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from kubedeck.errors import RestartNotSupportedError
from kubedeck.models import kinds

RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"

RestartPatchFn = Callable[[Any, datetime], dict[str, Any]]


def _timestamp(now: datetime) -> str:
    return now.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def template_restart_patch(now: datetime) -> dict[str, Any]:
    """Strategic-merge patch setting the restartedAt annotation on the pod template."""
    return {
        "spec": {
            "template": {
                "metadata": {
                    "annotations": {RESTARTED_AT_ANNOTATION: _timestamp(now)},
                },
            },
        },
    }


def deployment_restart_patch(dp: kinds.Deployment, now: datetime) -> dict[str, Any]:
    if dp.spec.paused:
        raise RestartNotSupportedError(
            f"can't restart paused deployment {dp.metadata.name!r} (run rollout resume first)"
        )
    return template_restart_patch(now)


def daemonset_restart_patch(ds: kinds.DaemonSet, now: datetime) -> dict[str, Any]:
    if ds.spec.update_strategy.type == "OnDelete":
        raise RestartNotSupportedError(
            f"can't restart daemonset {ds.metadata.name!r} with the OnDelete update strategy"
        )
    return template_restart_patch(now)


def statefulset_restart_patch(sts: kinds.StatefulSet, now: datetime) -> dict[str, Any]:
    if sts.spec.update_strategy.type == "OnDelete":
        raise RestartNotSupportedError(
            f"can't restart statefulset {sts.metadata.name!r} with the OnDelete update strategy"
        )
    return template_restart_patch(now)
