"""SOPS decryption for secret files encrypted at rest."""

import logging
import os
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Union

import click

from kubesops.config import get_age_key_path
from kubesops.console import error, info
from kubesops.errors import TransportError

logger = logging.getLogger(__name__)

SOPS_MARKERS = ("sops_", "sops:", "ENC[AES256_GCM,")


def is_sops_encrypted(content: str) -> bool:
    """Check whether content carries SOPS metadata markers."""
    return any(marker in content for marker in SOPS_MARKERS)


def check_dependencies() -> bool:
    """Check if sops is installed."""
    info("Checking dependencies...")

    try:
        subprocess.run(["sops", "--version"], capture_output=True, check=True)
    except (subprocess.CalledProcessError, FileNotFoundError):
        error("Missing required tool: sops")
        click.echo("\nInstall with:", err=True)
        click.echo("  brew install sops", err=True)
        return False

    info("All dependencies are installed.")
    return True


class SopsDecryptor:
    """Decrypts files by running ``sops --decrypt``.

    Args:
        age_key_file: Age key handed to sops as SOPS_AGE_KEY_FILE. When None,
            the key is looked up from the environment or the secrets directory.
    """

    def __init__(self, age_key_file: Optional[Path] = None):
        self.age_key_file = age_key_file

    def decrypt(self, path: Union[str, Path], env: Optional[Mapping[str, str]] = None) -> str:
        """Decrypt a file and return its plaintext.

        Raises:
            TransportError: If sops is missing or exits with an error
        """
        env = dict(os.environ if env is None else env)
        age_key_file = self.age_key_file or get_age_key_path(env)
        if age_key_file is not None:
            env["SOPS_AGE_KEY_FILE"] = str(age_key_file)

        logger.debug("Decrypting %s with sops", path)
        try:
            result = subprocess.run(
                ["sops", "--decrypt", str(path)],
                env=env,
                capture_output=True,
                text=True,
                check=True
            )
        except subprocess.CalledProcessError as e:
            output = (e.stderr or e.stdout or "").strip()
            raise TransportError(f"SOPS decryption failed: {e}\nOutput: {output}") from e
        except FileNotFoundError as e:
            raise TransportError("sops not found. Please install sops.") from e

        return result.stdout
