"""
Entidades del dominio del sync.
"""
from cms_sync.domain.entities.records import (
    FieldMapping,
    MappedFields,
    MirrorRecord,
    SourceRecord,
    NAME_FIELD,
    SLUG_FIELD,
)
from cms_sync.domain.entities.plan import (
    MirrorLink,
    Mutation,
    MutationKind,
    MutationPlan,
    SkippedRecord,
)
from cms_sync.domain.entities.results import (
    CycleSummary,
    FailedItem,
    MutationResult,
    PublishResult,
    RetryAttempt,
)

__all__ = [
    # Registros
    "FieldMapping",
    "MappedFields",
    "MirrorRecord",
    "SourceRecord",
    "NAME_FIELD",
    "SLUG_FIELD",
    # Plan
    "MirrorLink",
    "Mutation",
    "MutationKind",
    "MutationPlan",
    "SkippedRecord",
    # Resultados
    "CycleSummary",
    "FailedItem",
    "MutationResult",
    "PublishResult",
    "RetryAttempt",
]
