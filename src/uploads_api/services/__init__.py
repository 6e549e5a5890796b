"""
Uploads API service layer.

Request-scoped orchestration over the storage, metadata and event adapters.
"""

from .uploads import IncomingFile, UploadService

__all__ = ["IncomingFile", "UploadService"]
