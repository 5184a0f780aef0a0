"""
Excepciones del sync.
"""
from cms_sync.shared.exceptions.base import AppException
from cms_sync.shared.exceptions.sync import (
    FetchError,
    MappingError,
    MutationError,
    MutationErrorKind,
    PublishError,
    SyncConfigError,
)

__all__ = [
    "AppException",
    "FetchError",
    "MappingError",
    "MutationError",
    "MutationErrorKind",
    "PublishError",
    "SyncConfigError",
]
