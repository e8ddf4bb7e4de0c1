"""Shared test fixtures for kubesops."""

from __future__ import annotations

from pathlib import Path

import pytest

from kubesops.errors import NotFoundError
from kubesops.k8s.client import RemoteSecret, RemoteSecretRef


class FakeStore:
    """In-memory stand-in for KubeSecretStore."""

    def __init__(self):
        self.secrets = {}
        self.read_failures = {}
        self.write_failures = {}
        self.writes = []

    def add(self, namespace, name, data, secret_type="Opaque"):
        self.secrets[(namespace, name)] = RemoteSecret(
            namespace=namespace, name=name, type=secret_type, data=dict(data)
        )

    def get_secret(self, namespace, name):
        if (namespace, name) in self.read_failures:
            raise self.read_failures[(namespace, name)]
        if (namespace, name) not in self.secrets:
            raise NotFoundError(f"secret {namespace}/{name} not found")
        secret = self.secrets[(namespace, name)]
        return RemoteSecret(namespace=namespace, name=name, type=secret.type, data=dict(secret.data))

    def get(self, namespace, name):
        return self.get_secret(namespace, name).data

    def list(self, namespace):
        return [
            RemoteSecretRef(name=secret.name, type=secret.type)
            for (ns, _), secret in self.secrets.items()
            if ns == namespace
        ]

    def write(self, namespace, name, secret_type, values):
        if (namespace, name) in self.write_failures:
            raise self.write_failures[(namespace, name)]
        action = "updated" if (namespace, name) in self.secrets else "created"
        self.add(namespace, name, values, secret_type)
        self.writes.append((namespace, name, secret_type, dict(values)))
        return action


class FakeDecryptor:
    """Returns canned plaintext instead of running sops."""

    def __init__(self, plaintext=None):
        self.plaintext = plaintext or {}
        self.calls = []

    def decrypt(self, path, env=None):
        self.calls.append((Path(path), env))
        return self.plaintext[Path(path).name]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def decryptor() -> FakeDecryptor:
    return FakeDecryptor()


@pytest.fixture
def secrets_root(tmp_path: Path) -> Path:
    """Provide an empty secrets/ directory."""
    root = tmp_path / "secrets"
    root.mkdir()
    return root


@pytest.fixture
def write_env(secrets_root: Path):
    """Write a secret file below secrets_root and return its path."""

    def _write(namespace: str, name: str, content: str, root: Path = secrets_root) -> Path:
        path = root / namespace / f"{name}.env"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _write
