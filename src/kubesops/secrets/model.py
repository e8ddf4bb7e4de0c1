"""Canonical secret model and the secret type alias table."""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional

OPAQUE = "Opaque"
DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"
TLS = "kubernetes.io/tls"
BASIC_AUTH = "kubernetes.io/basic-auth"
SSH_AUTH = "kubernetes.io/ssh-auth"

TYPE_ALIASES: Dict[str, str] = {
    "docker-registry": DOCKER_CONFIG_JSON,
    "dockerconfigjson": DOCKER_CONFIG_JSON,
    "tls": TLS,
    "basic-auth": BASIC_AUTH,
    "ssh-auth": SSH_AUTH,
    "generic": OPAQUE,
    "opaque": OPAQUE,
    "": OPAQUE,
}

# Preferred alias written back into "# type=" headers
TYPE_HEADER_ALIASES: Dict[str, str] = {
    DOCKER_CONFIG_JSON: "docker-registry",
    TLS: "tls",
    BASIC_AUTH: "basic-auth",
    SSH_AUTH: "ssh-auth",
}


def canonical_type(alias: str) -> str:
    """Map a type alias to its Kubernetes secret type.

    Full Kubernetes type names and custom types pass through unchanged.
    """
    return TYPE_ALIASES.get(alias, alias)


def type_alias(secret_type: str) -> str:
    """Map a Kubernetes secret type back to the alias used in secret files."""
    return TYPE_HEADER_ALIASES.get(secret_type, secret_type)


@dataclass(frozen=True)
class Secret:
    """A Kubernetes secret in canonical (file) form.

    Attributes:
        namespace: Kubernetes namespace, taken from the parent directory
        name: Secret name, taken from the file name without extension
        type: Kubernetes secret type, e.g. "Opaque"
        entries: Key/value pairs in source vocabulary (read-only)
        path: File the secret was loaded from, if any
    """

    namespace: str
    name: str
    type: str = OPAQUE
    entries: Mapping[str, str] = field(default_factory=dict)
    path: Optional[Path] = field(default=None, compare=False)

    def __post_init__(self):
        if not self.namespace:
            raise ValueError("secret namespace must not be empty")
        if not self.name:
            raise ValueError("secret name must not be empty")
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    @property
    def qualified_name(self) -> str:
        """Return "<namespace>/<name>"."""
        return f"{self.namespace}/{self.name}"
