"""Kubernetes secret store backed by the official client.

Wraps CoreV1Api for secret get/list/create/update. Values travel base64
encoded in the API and are decoded to strings at this boundary.
"""

import base64
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import yaml
from kubernetes import client, config
from kubernetes.client import ApiException, CoreV1Api
from urllib3.exceptions import HTTPError

from kubesops.errors import NotFoundError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class RemoteSecretRef:
    """Name and type of a secret listed in a namespace."""

    name: str
    type: str


@dataclass
class RemoteSecret:
    """A secret read from the cluster, data in wire form."""

    namespace: str
    name: str
    type: str
    data: Dict[str, str] = field(default_factory=dict)


def load_kube_config(env: Optional[Mapping[str, str]] = None) -> None:
    """Load Kubernetes configuration into the default client.

    Priority order:
        1. In-cluster config
        2. KUBECONFIG (file path; KUBECONFIG_DATA is used if it is unreadable)
        3. KUBECONFIG_DATA (inline kubeconfig content)
        4. ~/.kube/config

    Raises:
        TransportError: If no usable configuration is found
    """
    env = os.environ if env is None else env
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes config")
        return
    except config.ConfigException:
        pass

    kubeconfig_path = env.get("KUBECONFIG")
    kubeconfig_data = env.get("KUBECONFIG_DATA")

    if kubeconfig_path:
        try:
            content = Path(kubeconfig_path).read_text()
        except OSError as e:
            if not kubeconfig_data:
                raise TransportError(f"error loading config file {kubeconfig_path!r}: {e}") from e
            content = kubeconfig_data
    elif kubeconfig_data:
        content = kubeconfig_data
    else:
        default_path = Path.home() / ".kube" / "config"
        try:
            content = default_path.read_text()
        except OSError as e:
            raise TransportError(f"error loading config file {str(default_path)!r}: {e}") from e

    try:
        config.load_kube_config_from_dict(yaml.safe_load(content))
    except (yaml.YAMLError, config.ConfigException, TypeError) as e:
        raise TransportError(f"error building kubeconfig: {e}") from e
    logger.debug("Loaded kubeconfig")


def _decode_data(data: Optional[Mapping[str, str]]) -> Dict[str, str]:
    return {key: base64.b64decode(value).decode("utf-8") for key, value in (data or {}).items()}


def _encode_data(values: Mapping[str, str]) -> Dict[str, str]:
    return {key: base64.b64encode(value.encode("utf-8")).decode("ascii") for key, value in values.items()}


class KubeSecretStore:
    """Reads and writes Kubernetes secrets.

    Args:
        api: CoreV1Api to use. When None, configuration is loaded with
            load_kube_config() on first use.
    """

    def __init__(self, api: Optional[CoreV1Api] = None):
        self._api = api

    @property
    def api(self) -> CoreV1Api:
        if self._api is None:
            load_kube_config()
            self._api = client.CoreV1Api()
        return self._api

    def get_secret(self, namespace: str, name: str) -> RemoteSecret:
        """Read a secret with its type.

        Raises:
            NotFoundError: If the secret does not exist
            TransportError: On any other API failure
        """
        try:
            secret = self.api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"secret {namespace}/{name} not found") from e
            raise TransportError(f"error reading secret {namespace}/{name}: {e.reason}") from e
        except HTTPError as e:
            raise TransportError(f"error reading secret {namespace}/{name}: {e}") from e

        try:
            data = _decode_data(secret.data)
        except (ValueError, UnicodeDecodeError) as e:
            raise TransportError(f"secret {namespace}/{name} holds non-text data: {e}") from e
        return RemoteSecret(namespace=namespace, name=name, type=secret.type or "Opaque", data=data)

    def exists(self, namespace: str, name: str) -> bool:
        try:
            self.api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return False
            raise TransportError(f"error reading secret {namespace}/{name}: {e.reason}") from e
        except HTTPError as e:
            raise TransportError(f"error reading secret {namespace}/{name}: {e}") from e
        return True

    def get(self, namespace: str, name: str) -> Dict[str, str]:
        """Read a secret's data in wire form."""
        return self.get_secret(namespace, name).data

    def list(self, namespace: str) -> List[RemoteSecretRef]:
        """List the secrets in a namespace."""
        try:
            secrets = self.api.list_namespaced_secret(namespace=namespace)
        except ApiException as e:
            raise TransportError(f"error listing secrets in {namespace}: {e.reason}") from e
        except HTTPError as e:
            raise TransportError(f"error listing secrets in {namespace}: {e}") from e
        return [RemoteSecretRef(name=item.metadata.name, type=item.type or "Opaque") for item in secrets.items]

    def _body(self, namespace: str, name: str, secret_type: str, values: Mapping[str, str]) -> client.V1Secret:
        return client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            type=secret_type,
            data=_encode_data(values),
        )

    def create(self, namespace: str, name: str, secret_type: str, values: Mapping[str, str]) -> None:
        try:
            self.api.create_namespaced_secret(
                namespace=namespace,
                body=self._body(namespace, name, secret_type, values),
            )
        except ApiException as e:
            raise TransportError(f"error creating secret {namespace}/{name}: {e.reason}") from e
        except HTTPError as e:
            raise TransportError(f"error creating secret {namespace}/{name}: {e}") from e
        logger.debug("Created secret %s in namespace %s", name, namespace)

    def update(self, namespace: str, name: str, secret_type: str, values: Mapping[str, str]) -> None:
        try:
            self.api.replace_namespaced_secret(
                name=name,
                namespace=namespace,
                body=self._body(namespace, name, secret_type, values),
            )
        except ApiException as e:
            raise TransportError(f"error updating secret {namespace}/{name}: {e.reason}") from e
        except HTTPError as e:
            raise TransportError(f"error updating secret {namespace}/{name}: {e}") from e
        logger.debug("Updated secret %s in namespace %s", name, namespace)

    def write(self, namespace: str, name: str, secret_type: str, values: Mapping[str, str]) -> str:
        """Create the secret if it does not exist, update it otherwise.

        Returns:
            "created" or "updated"
        """
        if not self.exists(namespace, name):
            self.create(namespace, name, secret_type, values)
            return "created"
        self.update(namespace, name, secret_type, values)
        return "updated"
