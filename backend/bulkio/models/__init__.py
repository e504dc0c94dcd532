"""
SQLModel/SQLAlchemy ORM models.

Models are imported lazily to avoid circular import issues.
Import specific models directly:
    from bulkio.models.user import User
    from bulkio.models.job import ImportJob

Or import all at once (after all modules are loaded):
    from bulkio.models import User, Article, ImportJob
"""

# Re-export SQLModel for convenience
from sqlmodel import SQLModel

__all__ = [
    "SQLModel",
    # Base
    "BaseTableModel",
    # Records
    "User",
    "Article",
    "Tag",
    "ArticleTag",
    "Comment",
    # Jobs
    "ImportJob",
    "ExportJob",
]


def __getattr__(name: str):
    """
    Lazy import of models to avoid circular import issues.

    This is called when an attribute is accessed that doesn't exist
    in the module namespace. We use it to defer model imports until
    they're actually needed.
    """
    if name == "BaseTableModel":
        from bulkio.models.base import BaseTableModel
        return BaseTableModel
    elif name == "User":
        from bulkio.models.user import User
        return User
    elif name in ("Article", "Tag", "ArticleTag"):
        from bulkio.models import article
        return getattr(article, name)
    elif name == "Comment":
        from bulkio.models.comment import Comment
        return Comment
    elif name in ("ImportJob", "ExportJob"):
        from bulkio.models import job
        return getattr(job, name)

    raise AttributeError(f"module 'bulkio.models' has no attribute '{name}'")
