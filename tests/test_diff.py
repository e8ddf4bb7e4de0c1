"""Tests for the reconciliation engine."""

from __future__ import annotations

import pytest

from kubesops.errors import TransportError
from kubesops.secrets.model import Secret
from kubesops.sync.diff import (
    EntryDiff,
    compare_remote,
    count_changed,
    diff_entries,
    diff_local_sets,
    format_value,
    report_remote,
    truncate_value,
)


def _secret(namespace="test", name="app", entries=None, secret_type="Opaque"):
    return Secret(namespace=namespace, name=name, type=secret_type, entries=entries or {})


class TestDiffEntries:
    """Tests for diff_entries()."""

    def test_classifies_keys(self):
        diffs = diff_entries({"same": "1", "changed": "a", "only_a": "x"}, {"same": "1", "changed": "b", "only_b": "y"})
        by_key = {d.key: d for d in diffs}

        assert not by_key["same"].changed
        assert by_key["changed"].changed
        assert by_key["only_a"] == EntryDiff("only_a", True, False, "x", None)
        assert by_key["only_b"] == EntryDiff("only_b", False, True, None, "y")
        assert count_changed(diffs) == 3

    def test_identical_maps(self):
        entries = {"A": "1", "B": "2"}
        assert count_changed(diff_entries(entries, dict(entries))) == 0

    def test_empty_string_differs_from_absent(self):
        diffs = diff_entries({"A": ""}, {})
        assert diffs[0].changed

    def test_sorted_by_code_point(self):
        diffs = diff_entries({"b": "1", "A": "1"}, {"a": "1", "_": "1"})
        assert [d.key for d in diffs] == ["A", "_", "a", "b"]

    def test_symmetric_detection(self):
        a = {"A": "1", "B": "2", "C": "3"}
        b = {"B": "2", "C": "x", "D": "4"}
        forward = [(d.key, d.changed) for d in diff_entries(a, b)]
        backward = [(d.key, d.changed) for d in diff_entries(b, a)]
        assert forward == backward

    def test_sides_follow_argument_order(self):
        (diff,) = diff_entries({"K": "left"}, {"K": "right"})
        assert (diff.value_a, diff.value_b) == ("left", "right")


class TestFormatValue:
    """Tests for value rendering."""

    def test_missing(self):
        assert format_value(None, False, verbose=True) == "missing"
        assert format_value(None, False, verbose=False) == "missing"

    def test_empty_string_is_not_missing(self):
        assert format_value("", True, verbose=False) == "[]"

    def test_verbose_shows_full_value(self):
        assert format_value("0123456789abcdef", True, verbose=True) == "[0123456789abcdef]"

    def test_truncates_long_values(self):
        assert format_value("0123456789abcdef", True, verbose=False) == "[0123456789...]"

    def test_short_values_untouched(self):
        assert truncate_value("0123456789") == "0123456789"


class TestDiffLocalSets:
    """Tests for local vs local diffing."""

    def test_single_files(self, capsys):
        total = diff_local_sets(
            [_secret("live", "a", {"K": "1"})],
            [_secret("test", "a", {"K": "2"})],
            "one", "two", verbose=False,
        )
        assert total == 1
        assert capsys.readouterr().out == "K\n  live: [1]\n  test: [2]\n1 difference(s)\n"

    def test_single_files_different_names(self, capsys):
        total = diff_local_sets(
            [_secret("live", "db", {"K": "1"})],
            [_secret("live", "cache", {"K": "1"})],
            "one", "two", verbose=False,
        )
        assert total == 0
        assert capsys.readouterr().out == "K\n0 difference(s)\n"

    def test_same_namespace_uses_path_labels(self, capsys):
        diff_local_sets(
            [_secret("test", "a", {"K": "1"})],
            [_secret("test", "a", {})],
            "dir1/test/a.env", "dir2/test/a.env", verbose=False,
        )
        out = capsys.readouterr().out
        assert "  dir1/test/a.env: [1]\n" in out
        assert "  dir2/test/a.env: missing\n" in out

    def test_verbose_values(self, capsys):
        diff_local_sets(
            [_secret("live", "a", {"K": "a-very-long-value"})],
            [_secret("test", "a", {"K": "b-very-long-value"})],
            "one", "two", verbose=True,
        )
        out = capsys.readouterr().out
        assert "  live: [a-very-long-value]\n" in out
        assert "  test: [b-very-long-value]\n" in out

    def test_name_only_on_one_side(self, capsys):
        total = diff_local_sets(
            [_secret("live", "x", {"A": "1", "B": "2"}), _secret("live", "y", {"A": "1"})],
            [_secret("test", "y", {"A": "1"}), _secret("test", "z", {"A": "1"})],
            "set1", "set2", verbose=False,
        )
        out = capsys.readouterr().out
        assert total == 2
        assert "secret x: only in set1\n" in out
        assert "secret z: only in set2\n" in out
        assert "B" not in out

    def test_matches_by_name_ignoring_namespace(self, capsys):
        total = diff_local_sets(
            [_secret("live", "db", {"PASS": "a"}), _secret("live", "cache", {"URL": "u"})],
            [_secret("staging", "db", {"PASS": "b"}), _secret("staging", "cache", {"URL": "u"})],
            "set1", "set2", verbose=False,
        )
        out = capsys.readouterr().out
        assert total == 1
        assert out.index("URL") < out.index("PASS")
        assert out.endswith("1 difference(s)\n")

    def test_sums_key_differences(self):
        total = diff_local_sets(
            [_secret("a", "one", {"A": "1", "B": "1"}), _secret("a", "two", {"C": "1"})],
            [_secret("b", "one", {"A": "2"}), _secret("b", "two", {"C": "2", "D": "1"})],
            "set1", "set2", verbose=False,
        )
        assert total == 4


class TestCompareRemote:
    """Tests for local vs remote comparison."""

    def test_in_sync(self, store):
        store.add("test", "app", {"A": "1"})
        comparison = compare_remote(_secret(entries={"A": "1"}), store)
        assert not comparison.missing
        assert comparison.differences == 0

    def test_changed_keys(self, store):
        store.add("test", "app", {"A": "1", "OLD": "x"})
        comparison = compare_remote(_secret(entries={"A": "2", "NEW": "y"}), store)
        assert comparison.differences == 3

    def test_missing_remote_counts_every_key(self, store):
        comparison = compare_remote(_secret(entries={"A": "1", "B": "2", "C": "3"}), store)
        assert comparison.missing
        assert comparison.error is None
        assert comparison.differences == 3
        assert all(not d.in_a and d.in_b for d in comparison.diffs)

    def test_missing_empty_secret_still_counts(self, store):
        comparison = compare_remote(_secret(entries={}), store)
        assert comparison.differences == 1

    def test_fetch_failure_recorded(self, store):
        store.read_failures[("test", "app")] = TransportError("connection refused")
        comparison = compare_remote(_secret(entries={"A": "1", "B": "2"}), store)
        assert comparison.missing
        assert isinstance(comparison.error, TransportError)
        assert comparison.differences == 2

    def test_remote_converted_with_local_type(self, store):
        store.add("test", "registry", {
            ".dockerconfigjson": '{"auths":{"ghcr.io":{"username":"u","password":"p","auth":"dTpw"}}}',
        }, "kubernetes.io/dockerconfigjson")
        local = _secret(name="registry", secret_type="kubernetes.io/dockerconfigjson", entries={
            "docker-server": "ghcr.io", "docker-username": "u", "docker-password": "p",
        })
        assert compare_remote(local, store).differences == 0

    def test_conversion_failure_recorded(self, store):
        store.add("test", "registry", {"unexpected": "x"}, "kubernetes.io/dockerconfigjson")
        local = _secret(name="registry", secret_type="kubernetes.io/dockerconfigjson", entries={"docker-server": "s"})
        comparison = compare_remote(local, store)
        assert comparison.missing
        assert comparison.error is not None


class TestReportRemote:
    """Tests for remote comparison output."""

    def test_prints_every_key_and_changed_values(self, store, capsys):
        store.add("test", "app", {"A": "1", "B": "old"})
        differences = report_remote(compare_remote(_secret(entries={"A": "1", "B": "new"}), store), verbose=False)
        assert differences == 1
        assert capsys.readouterr().out == "test/app/A\ntest/app/B\n  remote: [old]\n  onsite: [new]\n"

    def test_missing_secret_not_enumerated(self, store, capsys):
        differences = report_remote(compare_remote(_secret(entries={"A": "1", "B": "2"}), store), verbose=True)
        assert differences == 2
        assert capsys.readouterr().out == "secret test/app is missing\n"

    @pytest.mark.parametrize("verbose, rendered", [(False, "[abcdefghij...]"), (True, "[abcdefghijklmnop]")])
    def test_verbosity(self, store, capsys, verbose, rendered):
        store.add("test", "app", {})
        report_remote(compare_remote(_secret(entries={"K": "abcdefghijklmnop"}), store), verbose=verbose)
        out = capsys.readouterr().out
        assert "  remote: missing\n" in out
        assert f"  onsite: {rendered}\n" in out
