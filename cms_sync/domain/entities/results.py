"""
Resultados por item y resumen por ciclo.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from cms_sync.domain.entities.plan import Mutation, MutationKind
from cms_sync.shared.exceptions.sync import MutationError


@dataclass(frozen=True)
class RetryAttempt:
    """Diagnostico de un intento fallido que se reintento."""

    attempt: int
    kind: str
    message: str
    sleep_s: float


@dataclass
class MutationResult:
    """Resultado de aplicar una mutacion."""

    mutation: Mutation
    success: bool
    mirror_id: Optional[str] = None
    attempts: int = 0
    retries: List[RetryAttempt] = field(default_factory=list)
    error: Optional[MutationError] = None
    skipped: bool = False


@dataclass
class PublishResult:
    """Resultado de publicar un lote de items."""

    published: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    retries: List[RetryAttempt] = field(default_factory=list)


@dataclass(frozen=True)
class FailedItem:
    """Item fallido con su causa, para el resumen."""

    stage: str
    cause: str
    source_id: Optional[str] = None
    mirror_id: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass
class CycleSummary:
    """
    Resumen estructurado de un ciclo.

    `failed` siempre esta presente para distinguir "nada que hacer" de
    "algunos items fallaron".
    """

    created: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    retries: int = 0
    failed: List[FailedItem] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    publish_failed: List[str] = field(default_factory=list)
    writeback_failed: List[str] = field(default_factory=list)
    aborted: bool = False
    dry_run: bool = False
    error: Optional[str] = None
    duration_s: float = 0.0

    @classmethod
    def aborted_with(cls, error: str) -> "CycleSummary":
        return cls(aborted=True, error=error)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed or self.publish_failed or self.writeback_failed)

    def record(self, result: MutationResult) -> None:
        """Acumula el resultado de una mutacion."""
        self.retries += len(result.retries)
        mutation = result.mutation
        if result.skipped:
            self.skipped.append(mutation.describe())
            return
        if not result.success:
            error = result.error
            self.failed.append(
                FailedItem(
                    stage=mutation.kind.value,
                    cause=error.message if error else "desconocido",
                    source_id=mutation.source_id,
                    mirror_id=mutation.mirror_id,
                    error_kind=error.kind.value if error else None,
                )
            )
            return
        if mutation.kind is MutationKind.CREATE:
            self.created += 1
        elif mutation.kind is MutationKind.UPDATE:
            self.updated += 1
        else:
            self.deleted += 1

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["failed_count"] = len(self.failed)
        return data
