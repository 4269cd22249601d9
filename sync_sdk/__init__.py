"""Resumable, rate-limited, checkpointed extraction of paginated external APIs."""

__version__ = "0.1.0"
