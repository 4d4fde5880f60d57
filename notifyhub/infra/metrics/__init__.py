"""Prometheus instrumentation."""

from __future__ import annotations

from prometheus_client import generate_latest

from notifyhub.infra.metrics import prometheus, tracking
from notifyhub.infra.metrics.prometheus import REGISTRY

__all__ = [
    "REGISTRY",
    "generate_latest",
    "prometheus",
    "tracking",
]
