"""Load secrets from dotenv files and write them back."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Tuple, Union

from kubesops.config import SECRET_FILE_SUFFIX
from kubesops.errors import FormatError, KubesopsError, PathError
from kubesops.secrets.model import OPAQUE, Secret, type_alias
from kubesops.secrets.parser import ENV_REFERENCE_RE, parse_secret_content
from kubesops.secrets.sops_age import SopsDecryptor, is_sops_encrypted

logger = logging.getLogger(__name__)

# Characters that make a value need quoting in a secret file
SPECIAL_CHARS = set(" \t\"'$")


@dataclass
class LoadResult:
    """Secrets loaded from a path plus the files that failed to load."""

    secrets: List[Secret] = field(default_factory=list)
    errors: List[Tuple[Path, Exception]] = field(default_factory=list)


def secret_location(path: Union[str, Path]) -> Tuple[str, str]:
    """Derive (namespace, name) from a <root>/<namespace>/<name>.env path.

    Raises:
        PathError: If the path has fewer than three components
    """
    parts = Path(os.path.normpath(str(path))).parts
    if len(parts) < 3:
        raise PathError(f"invalid secret file path: expected secrets/<namespace>/<secretname>.env, got {path}")

    filename = parts[-1]
    name = os.path.splitext(filename)[0]
    if not name:
        raise PathError(f"invalid secret file path: empty secret name in {path}")
    return parts[-2], name


def read_secret_content(path: Path, decryptor=None, env: Optional[Mapping[str, str]] = None) -> str:
    """Read a secret file, decrypting it with sops when it is encrypted."""
    raw = path.read_text(encoding="utf-8")
    if not is_sops_encrypted(raw):
        return raw

    decryptor = decryptor or SopsDecryptor()
    return decryptor.decrypt(path, env)


def load_secret_file(path: Union[str, Path], decryptor=None, env: Optional[Mapping[str, str]] = None) -> Secret:
    """Load one secret file.

    Handles SOPS decryption, the "# type=" header and variable substitution.

    Args:
        path: File following the <root>/<namespace>/<name>.env layout
        decryptor: Object with a decrypt(path, env) method (defaults to sops)
        env: Mapping used for substitution and passed to the decryptor

    Raises:
        PathError: If the path does not follow the layout
        TransportError: If decryption fails
        FormatError: If the content is malformed
    """
    path = Path(path)
    namespace, name = secret_location(path)
    content = read_secret_content(path, decryptor, env)

    try:
        entries, secret_type = parse_secret_content(content, env)
    except FormatError as e:
        raise FormatError(f"failed to parse file {path}: {e}") from e

    return Secret(namespace=namespace, name=name, type=secret_type, entries=entries, path=path)


def find_secret_files(root: Path) -> List[Path]:
    """Find every .env file below root in sorted traversal order."""

    def on_error(exc):
        raise exc

    files = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename.endswith(SECRET_FILE_SUFFIX):
                files.append(Path(dirpath) / filename)
    return files


def load_secrets_from_path(path: Union[str, Path], decryptor=None, env: Optional[Mapping[str, str]] = None) -> LoadResult:
    """Load every secret below a directory, or a single secret file.

    Files that fail to load are collected in LoadResult.errors.

    Raises:
        PathError: If the path does not exist
        OSError: If the directory cannot be walked
    """
    path = Path(path)
    if not path.exists():
        raise PathError(f"path {path} does not exist")

    files = find_secret_files(path) if path.is_dir() else [path]

    result = LoadResult()
    for file_path in files:
        try:
            result.secrets.append(load_secret_file(file_path, decryptor, env))
        except (KubesopsError, OSError, UnicodeDecodeError) as e:
            logger.debug("Failed to load %s: %s", file_path, e)
            result.errors.append((file_path, e))
    return result


def format_value(value: str) -> str:
    """Quote a value so that parsing the written line yields it unchanged.

    Raises:
        FormatError: If the value spans multiple lines
    """
    if "\n" in value or "\r" in value:
        raise FormatError("multi-line values cannot be written to a secret file")
    needs_quotes = any(ch in SPECIAL_CHARS for ch in value) or (
        len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'"
    )
    if not needs_quotes:
        return value
    if "'" in value:
        return f'"{value}"'
    return f"'{value}'"


def substituted_keys(entries: Mapping[str, str]) -> List[str]:
    """Return the keys whose values hold $NAME or ${NAME} references.

    Such values change when a written file is parsed again.
    """
    return [key for key in sorted(entries) if ENV_REFERENCE_RE.search(entries[key])]


def write_secret_file(path: Union[str, Path], secret_type: str, entries: Mapping[str, str]) -> None:
    """Write entries to a secret file.

    Writes a "# type=" header for non-Opaque types followed by KEY=VALUE
    lines sorted by key. The file is created with mode 0600.
    """
    path = Path(path)
    lines = []
    if secret_type not in (OPAQUE, "generic"):
        lines.append(f"# type={type_alias(secret_type)}")
    for key in sorted(entries):
        try:
            lines.append(f"{key}={format_value(entries[key])}")
        except FormatError as e:
            raise FormatError(f"cannot write key {key}: {e}") from e

    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
