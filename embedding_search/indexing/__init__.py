"""Embedding refresh module."""

from embedding_search.indexing.models import RefreshReport, UpdateTarget
from embedding_search.indexing.refresher import RefreshCoordinator, StartupRefresh

__all__ = [
    "RefreshCoordinator",
    "RefreshReport",
    "StartupRefresh",
    "UpdateTarget",
]
