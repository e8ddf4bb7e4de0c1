"""Secret reconciliation: diffing and the upload/download driver."""

from kubesops.sync.diff import EntryDiff, RemoteComparison, compare_remote, diff_entries, diff_local_sets
from kubesops.sync.driver import SyncResult, diff_local, download, manifest, should_write, upload, write_secret

__all__ = [
    "EntryDiff",
    "RemoteComparison",
    "SyncResult",
    "compare_remote",
    "diff_entries",
    "diff_local",
    "diff_local_sets",
    "download",
    "manifest",
    "should_write",
    "upload",
    "write_secret",
]
