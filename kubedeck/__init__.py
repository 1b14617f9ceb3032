"""kubedeck: resource-access and live-state core for a Kubernetes terminal dashboard."""

__version__ = "0.3.0"
