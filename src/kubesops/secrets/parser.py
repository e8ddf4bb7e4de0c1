"""Parse decrypted dotenv content into secret entries."""

import os
import re
from typing import Dict, Mapping, Optional, Tuple

from kubesops.errors import FormatError
from kubesops.secrets.model import OPAQUE, canonical_type

TYPE_DIRECTIVE_RE = re.compile(r"^#\s*type\s*=\s*(.+)")
ENV_REFERENCE_RE = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z0-9_]+)")

QUOTE_CHARS = ('"', "'")


def extract_type_from_comment(line: str) -> Optional[str]:
    """Extract the secret type from a "# type=<alias>" comment.

    Returns:
        The alias, or None if the line is not a type directive
    """
    match = TYPE_DIRECTIVE_RE.match(line)
    if match:
        return match.group(1).strip()
    return None


def unquote(value: str) -> str:
    """Strip one layer of matching single or double quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in QUOTE_CHARS:
        return value[1:-1]
    return value


def substitute_env_vars(value: str, env: Mapping[str, str]) -> str:
    """Expand ${NAME} and $NAME references from env.

    Unknown names expand to an empty string. The result is not expanded
    again, so values coming from env are taken literally.
    """

    def replace(match):
        name = match.group(1) if match.group(1) is not None else match.group(2)
        return env.get(name, "")

    return ENV_REFERENCE_RE.sub(replace, value)


def parse_secret_content(content: str, env: Optional[Mapping[str, str]] = None) -> Tuple[Dict[str, str], str]:
    """Parse dotenv content into entries and a Kubernetes secret type.

    Args:
        content: Decrypted file content
        env: Mapping used for variable substitution (defaults to os.environ)

    Returns:
        Tuple of (entries, secret type)

    Raises:
        FormatError: If a non-comment line has no "=" separator
    """
    env = os.environ if env is None else env
    entries: Dict[str, str] = {}
    secret_type = OPAQUE

    for line_num, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()

        if line_num == 1 and line.startswith("#"):
            declared = extract_type_from_comment(line)
            if declared is not None:
                secret_type = declared
                continue

        if not line or line.startswith("#"):
            continue

        key, sep, value = line.partition("=")
        if not sep:
            raise FormatError(f"invalid line {line_num}: {line} (expected KEY=VALUE format)")

        entries[key.strip()] = unquote(value.strip())

    entries = {key: substitute_env_vars(value, env) for key, value in entries.items()}
    return entries, canonical_type(secret_type)
