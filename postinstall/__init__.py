"""postinstall — idempotent Linux post-install setup with a dry-run mode."""

__version__ = "0.1.0"
