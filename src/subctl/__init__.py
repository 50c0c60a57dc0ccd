"""subctl — subscription lifecycle control for private group memberships."""

__version__ = "0.3.0"
