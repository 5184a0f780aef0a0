"""
Servicios de aplicacion del sync.

Logica pura (sin I/O) y el ejecutor de mutaciones.
"""
from cms_sync.application.services.field_mapper import map_fields, validate_field_mappings
from cms_sync.application.services.reconciler import build_plan
from cms_sync.application.services.mutation_executor import MutationExecutor, RetryPolicy

__all__ = [
    "map_fields",
    "validate_field_mappings",
    "build_plan",
    "MutationExecutor",
    "RetryPolicy",
]
