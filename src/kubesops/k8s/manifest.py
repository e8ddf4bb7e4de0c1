"""Render secrets as Kubernetes Secret manifests."""

from typing import Iterable, Mapping, Tuple

import yaml

from kubesops.secrets.model import Secret

DOCUMENT_SEPARATOR = "---\n"


class QuotedString(str):
    """String always emitted double-quoted."""


class ManifestDumper(yaml.SafeDumper):
    pass


def _represent_quoted(dumper, value):
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(value), style='"')


ManifestDumper.add_representer(QuotedString, _represent_quoted)


def render_manifest(secret: Secret, wire_data: Mapping[str, str]) -> str:
    """Render one Secret manifest with stringData in wire form."""
    manifest = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {
            "name": secret.name,
            "namespace": secret.namespace,
        },
        "type": secret.type,
        "stringData": {key: QuotedString(wire_data[key]) for key in sorted(wire_data)},
    }
    return yaml.dump(manifest, Dumper=ManifestDumper, default_flow_style=False, sort_keys=False, allow_unicode=True, width=float("inf"))


def render_manifests(items: Iterable[Tuple[Secret, Mapping[str, str]]]) -> str:
    """Render several manifests separated by "---" lines."""
    return DOCUMENT_SEPARATOR.join(render_manifest(secret, wire_data) for secret, wire_data in items)
