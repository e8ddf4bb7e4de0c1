"""Upload, diff, download and manifest operations over a set of secrets.

Secrets are processed one at a time. A failure for one secret is reported
as a warning, collected in the result, and does not stop the batch. Only
failures to load the set itself (missing path, unreadable directory)
propagate to the caller.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Union

import click

from kubesops.config import SECRET_FILE_SUFFIX
from kubesops.console import warn
from kubesops.errors import KubesopsError, PathError
from kubesops.k8s.manifest import render_manifests
from kubesops.secrets import transforms
from kubesops.secrets.loader import (
    LoadResult,
    load_secrets_from_path,
    secret_location,
    substituted_keys,
    write_secret_file,
)
from kubesops.secrets.model import Secret
from kubesops.secrets.sops_age import is_sops_encrypted
from kubesops.sync.diff import compare_remote, diff_local_sets, report_remote


@dataclass
class SyncResult:
    """Counters and collected errors of one batch."""

    secrets_changed: int = 0
    keys_changed: int = 0
    written: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def record_error(self, name: str, message: str) -> None:
        warn(message)
        self.errors.append(f"{name}: {message}")


def _record_load_errors(loaded: LoadResult, result: SyncResult) -> None:
    for path, e in loaded.errors:
        result.record_error(str(path), f"failed to load {path}: {e}")


def should_write(differences: int, force: bool, doit: bool) -> bool:
    """Decide whether a secret is written to the cluster.

    Nothing is written without doit. With doit, a secret is written when it
    differs from the cluster, or always when force is set.
    """
    return doit and (force or differences > 0)


def write_secret(secret: Secret, store, registry: Optional[transforms.TransformRegistry] = None) -> str:
    """Convert a secret to wire form and create or update it in the cluster.

    Returns:
        "created" or "updated"
    """
    registry = registry or transforms.registry
    wire = registry.to_wire(secret.type, secret.entries)
    return store.write(secret.namespace, secret.name, secret.type, wire)


def print_summary(result: SyncResult) -> None:
    click.echo("")
    click.echo(f"secrets changed: {result.secrets_changed}")
    click.echo(f"keys changed: {result.keys_changed}")
    if result.errors:
        click.echo(f"completed with {len(result.errors)} error(s)")


def upload(
    path: Union[str, Path],
    store,
    force: bool = False,
    doit: bool = False,
    verbose: bool = False,
    decryptor=None,
    env: Optional[Mapping[str, str]] = None,
    registry: Optional[transforms.TransformRegistry] = None,
) -> SyncResult:
    """Diff local secrets against the cluster and optionally upload them.

    Args:
        path: Secrets directory or single secret file
        store: Secret store (see kubesops.k8s.client.KubeSecretStore)
        force: Upload even when nothing changed (requires doit)
        doit: Actually write; without it this is a dry-run
        verbose: Show full values in diff output

    Raises:
        PathError: If path does not exist
    """
    loaded = load_secrets_from_path(path, decryptor, env)
    result = SyncResult()
    _record_load_errors(loaded, result)

    if not loaded.secrets:
        click.echo(f"no secrets found in {path}")
        return result

    for secret in loaded.secrets:
        name = secret.qualified_name
        comparison = compare_remote(secret, store, registry)
        if comparison.error is not None:
            result.record_error(name, f"failed to read remote secret {name}: {comparison.error}")

        differences = report_remote(comparison, verbose)
        if differences > 0:
            result.secrets_changed += 1
            result.keys_changed += differences

        if not should_write(differences, force, doit):
            continue

        click.echo(f"uploading secret {name}...")
        try:
            action = write_secret(secret, store, registry)
        except KubesopsError as e:
            result.record_error(name, f"upload failed for {name}: {e}")
            continue
        result.written += 1
        click.echo(f"{action.capitalize()} secret {secret.name} in namespace {secret.namespace}")

    print_summary(result)
    return result


def diff_local(
    path1: Union[str, Path],
    path2: Union[str, Path],
    verbose: bool = False,
    decryptor=None,
    env: Optional[Mapping[str, str]] = None,
) -> SyncResult:
    """Compare two local secret sets.

    The total difference count is returned as keys_changed.

    Raises:
        PathError: If either path does not exist
    """
    loaded1 = load_secrets_from_path(path1, decryptor, env)
    loaded2 = load_secrets_from_path(path2, decryptor, env)

    result = SyncResult()
    _record_load_errors(loaded1, result)
    _record_load_errors(loaded2, result)

    result.keys_changed = diff_local_sets(loaded1.secrets, loaded2.secrets, str(path1), str(path2), verbose)
    return result


def manifest(
    path: Union[str, Path],
    decryptor=None,
    env: Optional[Mapping[str, str]] = None,
    registry: Optional[transforms.TransformRegistry] = None,
) -> SyncResult:
    """Print Kubernetes Secret manifests for local secrets.

    Raises:
        PathError: If path does not exist
    """
    registry = registry or transforms.registry
    loaded = load_secrets_from_path(path, decryptor, env)
    result = SyncResult()
    _record_load_errors(loaded, result)

    if not loaded.secrets:
        click.echo(f"no secrets found in {path}")
        return result

    items = []
    for secret in loaded.secrets:
        try:
            items.append((secret, registry.to_wire(secret.type, secret.entries)))
        except KubesopsError as e:
            result.record_error(secret.qualified_name, f"failed to convert {secret.qualified_name}: {e}")

    click.echo(render_manifests(items), nl=False)
    return result


def _download_one(store, namespace: str, name: str, file_path: Path, registry, result: SyncResult) -> None:
    qualified = f"{namespace}/{name}"
    click.echo(f"downloading secret {qualified}...")
    try:
        remote = store.get_secret(namespace, name)
        entries = registry.from_wire(remote.type, remote.data)
        if file_path.exists() and is_sops_encrypted(file_path.read_text(encoding="utf-8")):
            warn(f"replacing encrypted file {file_path} with plaintext")
        write_secret_file(file_path, remote.type, entries)
        for key in substituted_keys(entries):
            warn(f"{qualified}: value of {key} contains a $ reference and will be substituted when {file_path} is read")
    except (KubesopsError, OSError) as e:
        result.record_error(qualified, f"download failed for {qualified}: {e}")
        return
    result.written += 1
    click.echo(f"downloaded {qualified} to {file_path}")


def download_file(path: Union[str, Path], store, registry=None) -> SyncResult:
    """Download the secret a <root>/<namespace>/<name>.env path refers to."""
    registry = registry or transforms.registry
    path = Path(path)
    result = SyncResult()
    namespace, name = secret_location(path)
    _download_one(store, namespace, name, path, registry, result)
    return result


def download_directory(
    path: Union[str, Path],
    store,
    decryptor=None,
    env: Optional[Mapping[str, str]] = None,
    registry=None,
) -> SyncResult:
    """Download every secret belonging to a namespace directory.

    Existing secret files are refreshed from the cluster. When the
    directory holds none, the namespace named by the directory is listed
    and every secret in it is written to <path>/<name>.env.
    """
    registry = registry or transforms.registry
    path = Path(path)
    result = SyncResult()

    loaded = LoadResult()
    if path.is_dir():
        loaded = load_secrets_from_path(path, decryptor, env)

    if loaded.secrets:
        _record_load_errors(loaded, result)
        for secret in loaded.secrets:
            _download_one(store, secret.namespace, secret.name, secret.path, registry, result)
        return result

    namespace = path.resolve().name
    if not namespace:
        raise PathError(f"invalid path: expected secrets/<namespace>, got {path}")

    click.echo(f"listing secrets in namespace {namespace}...")
    refs = store.list(namespace)
    if not refs:
        click.echo(f"no secrets found in namespace {namespace}")
        return result

    click.echo(f"found {len(refs)} secret(s) in namespace {namespace}")
    for ref in sorted(refs, key=lambda ref: ref.name):
        _download_one(store, namespace, ref.name, path / f"{ref.name}{SECRET_FILE_SUFFIX}", registry, result)
    return result


def download(
    path: Union[str, Path],
    store,
    decryptor=None,
    env: Optional[Mapping[str, str]] = None,
    registry=None,
) -> SyncResult:
    """Download secrets from the cluster into local files.

    A file path (existing, or ending in .env) downloads one secret; any
    other path is treated as a namespace directory.
    """
    path = Path(path)
    if path.is_file() or (not path.exists() and path.name.endswith(SECRET_FILE_SUFFIX)):
        result = download_file(path, store, registry)
    else:
        result = download_directory(path, store, decryptor, env, registry)

    click.echo("")
    if result.errors:
        click.echo(f"completed with {len(result.errors)} error(s)")
    else:
        click.echo(f"downloaded {result.written} secret(s)")
    return result
