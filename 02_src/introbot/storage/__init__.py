"""Storage module."""

from .storage import IProfileRepository, IRunResultSink, ISupportRepository, Storage

__all__ = ["IProfileRepository", "IRunResultSink", "ISupportRepository", "Storage"]
