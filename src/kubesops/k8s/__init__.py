"""Kubernetes secret store and manifest rendering."""

from kubesops.k8s.client import KubeSecretStore, RemoteSecret, RemoteSecretRef, load_kube_config
from kubesops.k8s.manifest import render_manifest, render_manifests

__all__ = [
    "KubeSecretStore",
    "RemoteSecret",
    "RemoteSecretRef",
    "load_kube_config",
    "render_manifest",
    "render_manifests",
]
