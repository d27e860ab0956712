"""Training Tracker domain mapping.

Converts between persistence-layer entities and domain/view models by copying
same-named fields, recursing into nested models and collections of them.
"""
from training_tracker.core.errors import (
    FieldAssignmentError,
    MappingCycleError,
    MappingError,
    TargetConstructionError,
)
from training_tracker.mappers.domain_mapper import DomainMapper, domain_mapper, map_object
from training_tracker.mappers.introspection import FieldKind, classify, register_primitive

__all__ = [
    "DomainMapper",
    "domain_mapper",
    "map_object",
    "FieldKind",
    "classify",
    "register_primitive",
    "MappingError",
    "TargetConstructionError",
    "FieldAssignmentError",
    "MappingCycleError",
]

__version__ = "0.1.0"
