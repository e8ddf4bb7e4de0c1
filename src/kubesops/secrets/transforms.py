"""Conversions between secret file entries and Kubernetes secret data.

Most secret types store their entries unchanged. Types with a registered
codec are reshaped on the way to and from the cluster; a docker-registry
secret, for example, is kept as docker-* keys locally and as a single
.dockerconfigjson blob in Kubernetes.
"""

import base64
import binascii
import json
from typing import Dict, Mapping

from kubesops.errors import FormatError, ValidationError
from kubesops.secrets.model import DOCKER_CONFIG_JSON

DOCKER_CONFIG_KEY = ".dockerconfigjson"
DOCKER_SERVER = "docker-server"
DOCKER_USERNAME = "docker-username"
DOCKER_PASSWORD = "docker-password"
DOCKER_EMAIL = "docker-email"


class IdentityCodec:
    """Codec for types whose entries are stored as-is."""

    def to_wire(self, entries: Mapping[str, str]) -> Dict[str, str]:
        return dict(entries)

    def from_wire(self, data: Mapping[str, str]) -> Dict[str, str]:
        return dict(data)


class DockerRegistryCodec:
    """Codec for kubernetes.io/dockerconfigjson secrets."""

    required_fields = (DOCKER_SERVER, DOCKER_USERNAME, DOCKER_PASSWORD)

    def to_wire(self, entries: Mapping[str, str]) -> Dict[str, str]:
        """Build the .dockerconfigjson blob from docker-* entries.

        Raises:
            ValidationError: If server, username or password is missing or empty
        """
        for name in self.required_fields:
            if not entries.get(name):
                raise ValidationError(f"{name} is required for docker-registry secrets")

        username = entries[DOCKER_USERNAME]
        password = entries[DOCKER_PASSWORD]
        auth = {
            "username": username,
            "password": password,
        }
        email = entries.get(DOCKER_EMAIL, "")
        if email:
            auth["email"] = email
        auth["auth"] = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")

        config = {"auths": {entries[DOCKER_SERVER]: auth}}
        return {DOCKER_CONFIG_KEY: json.dumps(config, separators=(",", ":"))}

    def from_wire(self, data: Mapping[str, str]) -> Dict[str, str]:
        """Split a .dockerconfigjson blob back into docker-* entries.

        When several registries are configured, the lexically smallest
        registry is used.

        Raises:
            ValidationError: If the .dockerconfigjson key is missing
            FormatError: If the JSON is malformed or has no auths
        """
        if DOCKER_CONFIG_KEY not in data:
            raise ValidationError(f"docker-registry secret missing {DOCKER_CONFIG_KEY} key")

        try:
            config = json.loads(data[DOCKER_CONFIG_KEY])
        except json.JSONDecodeError as e:
            raise FormatError(f"failed to parse docker config: {e}") from e

        auths = config.get("auths") if isinstance(config, dict) else None
        if not isinstance(auths, dict):
            raise FormatError("docker config has no auths object")
        if not auths:
            raise FormatError("no auths found in docker config")

        server = min(auths)
        auth = auths[server]
        if not isinstance(auth, dict):
            raise FormatError(f"docker config entry for {server} is not an object")

        username = auth.get("username") or ""
        password = auth.get("password") or ""
        if not (username and password) and auth.get("auth"):
            decoded_user, decoded_password = _decode_auth(auth["auth"])
            username = username or decoded_user
            password = password or decoded_password

        result = {
            DOCKER_SERVER: server,
            DOCKER_USERNAME: username,
            DOCKER_PASSWORD: password,
        }
        if auth.get("email"):
            result[DOCKER_EMAIL] = auth["email"]
        return result


def _decode_auth(value: str):
    try:
        decoded = base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise FormatError(f"invalid auth field in docker config: {e}") from e
    username, sep, password = decoded.partition(":")
    if not sep:
        raise FormatError("invalid auth field in docker config: expected username:password")
    return username, password


class TransformRegistry:
    """Maps secret types to codecs; unregistered types use the identity codec."""

    def __init__(self):
        self._codecs = {}
        self._default = IdentityCodec()

    def register(self, secret_type: str, codec) -> None:
        self._codecs[secret_type] = codec

    def codec_for(self, secret_type: str):
        return self._codecs.get(secret_type, self._default)

    def to_wire(self, secret_type: str, entries: Mapping[str, str]) -> Dict[str, str]:
        """Convert file entries to Kubernetes secret data."""
        return self.codec_for(secret_type).to_wire(entries)

    def from_wire(self, secret_type: str, data: Mapping[str, str]) -> Dict[str, str]:
        """Convert Kubernetes secret data to file entries."""
        return self.codec_for(secret_type).from_wire(data)


def default_registry() -> TransformRegistry:
    """Create a registry with the built-in codecs."""
    registry = TransformRegistry()
    registry.register(DOCKER_CONFIG_JSON, DockerRegistryCodec())
    return registry


registry = default_registry()


def to_wire(secret_type: str, entries: Mapping[str, str]) -> Dict[str, str]:
    """Convert file entries to Kubernetes secret data using the default registry."""
    return registry.to_wire(secret_type, entries)


def from_wire(secret_type: str, data: Mapping[str, str]) -> Dict[str, str]:
    """Convert Kubernetes secret data to file entries using the default registry."""
    return registry.from_wire(secret_type, data)
