"""docflow: document upload-completion service."""

__version__ = "0.1.0"
