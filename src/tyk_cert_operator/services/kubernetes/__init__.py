"""Kubernetes resource access."""

from .store import KubernetesResourceStore, load_kubernetes_config

__all__ = ["KubernetesResourceStore", "load_kubernetes_config"]
