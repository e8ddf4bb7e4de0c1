"""kubesops - Manage Kubernetes secrets as encrypted dotenv files."""

__version__ = "0.1.0"
