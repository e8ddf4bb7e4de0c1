"""Default locations and environment lookups."""

import os
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_SECRETS_DIR = "secrets"
SECRET_FILE_SUFFIX = ".env"
AGE_KEY_FILENAME = "age-key.txt"


def get_secrets_dir(base: Optional[Path] = None) -> Path:
    """Get the default secrets directory path.

    Args:
        base: Directory to resolve against (defaults to the current directory)
    """
    return (base or Path.cwd()) / DEFAULT_SECRETS_DIR


def get_age_key_path(env: Optional[Mapping[str, str]] = None, base: Optional[Path] = None) -> Optional[Path]:
    """Get the age key file handed to sops, if any.

    SOPS_AGE_KEY_FILE wins when set; otherwise an age-key.txt inside the
    default secrets directory is used when present.
    """
    env = os.environ if env is None else env
    configured = env.get("SOPS_AGE_KEY_FILE")
    if configured:
        return Path(configured)

    candidate = get_secrets_dir(base) / AGE_KEY_FILENAME
    if candidate.exists():
        return candidate
    return None
