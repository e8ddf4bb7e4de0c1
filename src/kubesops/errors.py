"""Exception types raised while loading, converting and syncing secrets."""


class KubesopsError(Exception):
    """Base class for all kubesops errors."""


class FormatError(KubesopsError):
    """Malformed secret file content or malformed wire data."""


class ValidationError(KubesopsError):
    """A field required by a secret type is missing or empty."""


class NotFoundError(KubesopsError):
    """The secret does not exist in the cluster."""


class TransportError(KubesopsError):
    """Decryption subprocess or Kubernetes API call failed."""


class PathError(KubesopsError):
    """A path does not have the <root>/<namespace>/<name>.env shape."""
