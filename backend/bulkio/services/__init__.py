"""
Services package - business logic layer.

Import services from their modules, e.g.:
    from bulkio.services.import_service import ImportPipeline
"""

from bulkio.services.base import BaseService

__all__ = [
    "BaseService",
]
