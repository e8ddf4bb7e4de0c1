"""Secret model, parsing, type transforms and SOPS decryption."""

from kubesops.secrets.loader import LoadResult, load_secret_file, load_secrets_from_path, secret_location, write_secret_file
from kubesops.secrets.model import Secret, canonical_type, type_alias
from kubesops.secrets.parser import parse_secret_content
from kubesops.secrets.sops_age import SopsDecryptor, check_dependencies, is_sops_encrypted
from kubesops.secrets.transforms import TransformRegistry, from_wire, to_wire

__all__ = [
    "LoadResult",
    "Secret",
    "SopsDecryptor",
    "TransformRegistry",
    "canonical_type",
    "check_dependencies",
    "from_wire",
    "is_sops_encrypted",
    "load_secret_file",
    "load_secrets_from_path",
    "parse_secret_content",
    "secret_location",
    "to_wire",
    "type_alias",
    "write_secret_file",
]
