"""Compare secret entries locally and against the cluster.

Both comparison modes are built on diff_entries(), which walks the union of
keys in ascending order. Every key is printed; the value pair is printed only
for keys that differ.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import click

from kubesops.errors import KubesopsError, NotFoundError
from kubesops.secrets import transforms
from kubesops.secrets.model import Secret

TRUNCATE_LENGTH = 10
MISSING = "missing"

REMOTE_LABEL = "remote"
ONSITE_LABEL = "onsite"


@dataclass(frozen=True)
class EntryDiff:
    """Presence and value of one key on both sides of a comparison."""

    key: str
    in_a: bool
    in_b: bool
    value_a: Optional[str] = None
    value_b: Optional[str] = None

    @property
    def changed(self) -> bool:
        return not (self.in_a and self.in_b) or self.value_a != self.value_b


def diff_entries(a: Mapping[str, str], b: Mapping[str, str]) -> List[EntryDiff]:
    """Diff two entry maps over the sorted union of their keys."""
    return [
        EntryDiff(key=key, in_a=key in a, in_b=key in b, value_a=a.get(key), value_b=b.get(key))
        for key in sorted(set(a) | set(b))
    ]


def count_changed(diffs: Iterable[EntryDiff]) -> int:
    return sum(1 for diff in diffs if diff.changed)


def truncate_value(value: str, max_len: int = TRUNCATE_LENGTH) -> str:
    """Truncate value to max_len characters, adding "..." if truncated."""
    if len(value) <= max_len:
        return value
    return value[:max_len] + "..."


def format_value(value: Optional[str], exists: bool, verbose: bool) -> str:
    """Format a value for display; absent values show as "missing"."""
    if not exists:
        return MISSING
    if verbose:
        return f"[{value}]"
    return f"[{truncate_value(value)}]"


def report_entry_diffs(diffs: Iterable[EntryDiff], label_a: str, label_b: str, verbose: bool, prefix: str = "") -> int:
    """Print every key and, for keys that differ, both values.

    Returns:
        Number of keys that differ
    """
    differences = 0
    for diff in diffs:
        click.echo(f"{prefix}{diff.key}")
        if diff.changed:
            differences += 1
            click.echo(f"  {label_a}: {format_value(diff.value_a, diff.in_a, verbose)}")
            click.echo(f"  {label_b}: {format_value(diff.value_b, diff.in_b, verbose)}")
    return differences


@dataclass
class RemoteComparison:
    """Outcome of comparing one local secret with its cluster counterpart.

    Diffs are remote-first: side a is the cluster, side b is the local file.
    """

    secret: Secret
    diffs: List[EntryDiff] = field(default_factory=list)
    missing: bool = False
    error: Optional[Exception] = None

    @property
    def differences(self) -> int:
        if self.missing:
            # An empty secret that is missing remotely still needs writing
            return max(len(self.secret.entries), 1)
        return count_changed(self.diffs)


def compare_remote(secret: Secret, store, registry: Optional[transforms.TransformRegistry] = None) -> RemoteComparison:
    """Compare a local secret with the cluster.

    A secret that does not exist remotely is marked missing. Any other read
    or conversion failure is recorded on the comparison and the secret is
    treated as missing too.
    """
    registry = registry or transforms.registry
    local: Dict[str, str] = dict(secret.entries)

    try:
        wire = store.get(secret.namespace, secret.name)
        remote = registry.from_wire(secret.type, wire)
    except NotFoundError:
        return RemoteComparison(secret=secret, diffs=diff_entries({}, local), missing=True)
    except KubesopsError as e:
        return RemoteComparison(secret=secret, diffs=diff_entries({}, local), missing=True, error=e)

    return RemoteComparison(secret=secret, diffs=diff_entries(remote, local))


def report_remote(comparison: RemoteComparison, verbose: bool) -> int:
    """Print a remote comparison and return its difference count."""
    secret = comparison.secret
    if comparison.missing:
        click.echo(f"secret {secret.qualified_name} is missing")
        return comparison.differences
    return report_entry_diffs(comparison.diffs, REMOTE_LABEL, ONSITE_LABEL, verbose, prefix=f"{secret.qualified_name}/")


def local_labels(secret1: Secret, secret2: Secret, label1: str, label2: str):
    """Pick side labels: namespaces, or the given labels when namespaces match."""
    if secret1.namespace != secret2.namespace:
        return secret1.namespace, secret2.namespace
    return label1, label2


def compare_local(secret1: Secret, secret2: Secret, label1: str, label2: str, verbose: bool) -> int:
    """Print the entry diff of two local secrets and return its count."""
    side1, side2 = local_labels(secret1, secret2, label1, label2)
    return report_entry_diffs(diff_entries(secret1.entries, secret2.entries), side1, side2, verbose)


def diff_local_sets(secrets1: List[Secret], secrets2: List[Secret], label1: str, label2: str, verbose: bool) -> int:
    """Diff two local secret sets and print the total.

    Two single secrets are compared directly. Larger sets are matched by
    secret name only; a name on one side only counts as one difference.

    Returns:
        Total number of differences
    """
    if len(secrets1) == 1 and len(secrets2) == 1:
        total = compare_local(secrets1[0], secrets2[0], label1, label2, verbose)
        click.echo(f"{total} difference(s)")
        return total

    by_name1 = {secret.name: secret for secret in secrets1}
    by_name2 = {secret.name: secret for secret in secrets2}

    total = 0
    for name in sorted(set(by_name1) | set(by_name2)):
        if name not in by_name1:
            click.echo(f"secret {name}: only in {label2}")
            total += 1
            continue
        if name not in by_name2:
            click.echo(f"secret {name}: only in {label1}")
            total += 1
            continue
        total += compare_local(by_name1[name], by_name2[name], label1, label2, verbose)

    click.echo(f"{total} difference(s)")
    return total
