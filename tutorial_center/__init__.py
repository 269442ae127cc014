"""Content-management backend: articles, approvals, readers and users."""

__version__ = "1.0.0"
