"""Field discovery and kind classification for the domain mapper.

Every annotation the mapper meets is sorted into one of three kinds:

- ``PRIMITIVE``: copied as-is (scalars, strings, dates, enums, mappings and
  collections of primitives).
- ``COMPOSITE``: a pydantic model, dataclass or annotated class whose fields
  are mapped one by one into a new instance.
- ``COLLECTION``: a list/set/tuple of composites, mapped element by element.

A class can pin its own kind with a ``__mapping_kind__`` attribute, and
callers can extend the primitive set with :func:`register_primitive`.
"""
import collections.abc
import dataclasses
import inspect
import types
import typing
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, ClassVar, Dict, List, Literal, Optional, TypeVar, Union, get_args, get_origin, get_type_hints
from uuid import UUID

from pydantic import BaseModel

from training_tracker.core.errors import TargetConstructionError
from training_tracker.core.logging import get_logger

logger = get_logger(__name__)


class FieldKind(str, Enum):
    """How the mapper treats a value of a given type."""
    PRIMITIVE = "primitive"
    COMPOSITE = "composite"
    COLLECTION = "collection"


_PRIMITIVE_TYPES = {
    int, float, complex, bool, str, bytes, bytearray,
    Decimal, UUID, date, datetime, time, timedelta, Enum,
    dict, list, set, frozenset, tuple, type(None),
}
_primitive_bases = tuple(_PRIMITIVE_TYPES)

# Collection types whose elements may need mapping, and what to build for them
COLLECTION_FACTORIES = {
    list: list,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Collection: list,
    collections.abc.Iterable: list,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
}


def register_primitive(*types_: type) -> None:
    """Treat the given types (and their subclasses) as primitives.

    Example:
        >>> register_primitive(Path)
        >>> classify(Path)
        <FieldKind.PRIMITIVE: 'primitive'>
    """
    global _primitive_bases
    _PRIMITIVE_TYPES.update(types_)
    _primitive_bases = tuple(_PRIMITIVE_TYPES)


def unwrap(annotation: Any) -> Any:
    """Strip Optional[...], Annotated[...] and NewType down to the underlying type."""
    while True:
        if hasattr(annotation, "__supertype__"):
            annotation = annotation.__supertype__
            continue
        origin = get_origin(annotation)
        if origin is typing.Annotated:
            annotation = get_args(annotation)[0]
            continue
        if origin is Union or origin is types.UnionType:
            members = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(members) == 1:
                annotation = members[0]
                continue
        return annotation


def collection_origin(annotation: Any) -> Optional[type]:
    """Return the collection type behind an annotation, or None if it is not one."""
    annotation = unwrap(annotation)
    origin = get_origin(annotation) or annotation
    try:
        return origin if origin in COLLECTION_FACTORIES else None
    except TypeError:
        # unhashable annotation objects are never collections
        return None


def collection_element_type(annotation: Any) -> Optional[Any]:
    """Element type of a collection annotation.

    Returns None for bare collections (``list``) and heterogeneous tuples;
    the mapper aliases the former and rejects the latter.
    """
    annotation = unwrap(annotation)
    origin = collection_origin(annotation)
    args = get_args(annotation)
    if origin is None or not args:
        return None
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        return None
    return args[0]


def classify(annotation: Any) -> FieldKind:
    """Classify an annotation as primitive, composite or collection."""
    annotation = unwrap(annotation)
    if annotation is Any or annotation is object or isinstance(annotation, TypeVar):
        return FieldKind.PRIMITIVE

    if get_origin(annotation) is not None:
        if collection_origin(annotation) is None:
            # dict[...], Literal[...], Union of several types, Callable[...]
            return FieldKind.PRIMITIVE
        element = collection_element_type(annotation)
        if element is None or classify(element) is FieldKind.PRIMITIVE:
            return FieldKind.PRIMITIVE
        return FieldKind.COLLECTION

    if not isinstance(annotation, type):
        # unresolved forward references and other typing constructs
        return FieldKind.PRIMITIVE

    marker = getattr(annotation, "__mapping_kind__", None)
    if marker is not None:
        return FieldKind(marker)
    if issubclass(annotation, _primitive_bases):
        return FieldKind.PRIMITIVE
    if is_composite_type(annotation):
        return FieldKind.COMPOSITE
    return FieldKind.PRIMITIVE


def is_composite_type(cls: type) -> bool:
    """True for pydantic models, dataclasses and classes with annotated fields."""
    if issubclass(cls, BaseModel) or dataclasses.is_dataclass(cls):
        return True
    return bool(class_fields(cls))


@lru_cache(maxsize=None)
def class_fields(cls: type) -> Dict[str, Any]:
    """Public, settable fields declared on a class, with their annotations.

    Results are cached per class. Type hints that cannot be resolved (for
    example forward references to names that no longer exist) fall back to
    ``Any`` so the field is still copied as-is.
    """
    if issubclass(cls, BaseModel):
        return {name: info.annotation for name, info in cls.model_fields.items()}

    try:
        hints = get_type_hints(cls)
    except (NameError, TypeError) as exc:
        logger.warning(
            f"Could not resolve type hints for {cls.__qualname__}: {exc}",
            extra={"target_type": cls.__qualname__}
        )
        hints = {}
        for klass in reversed(cls.__mro__):
            hints.update({name: Any for name in inspect.get_annotations(klass)})

    if dataclasses.is_dataclass(cls):
        names = [f.name for f in dataclasses.fields(cls)]
        return {name: hints.get(name, Any) for name in names}

    return {
        name: hint
        for name, hint in hints.items()
        if not name.startswith("_") and hint is not ClassVar and get_origin(hint) is not ClassVar
    }


@lru_cache(maxsize=None)
def class_properties(cls: type) -> tuple:
    """Names of public properties defined on a class or its bases."""
    names = []
    for klass in cls.__mro__:
        if klass in (object, BaseModel):
            continue
        for name, member in vars(klass).items():
            if isinstance(member, property) and not name.startswith("_") and name not in names:
                names.append(name)
    return tuple(names)


def source_fields(obj: Any) -> List[str]:
    """Names of the readable fields on a source object."""
    cls = type(obj)
    if isinstance(obj, BaseModel):
        # fields left unset by model_construct() are absent from __dict__
        names = [name for name in cls.model_fields if name in obj.__dict__]
    elif dataclasses.is_dataclass(obj):
        names = [f.name for f in dataclasses.fields(obj)]
    else:
        names = [name for name in getattr(obj, "__dict__", {}) if not name.startswith("_")]
        # slotted classes keep their values outside __dict__
        names += [name for name in class_fields(cls) if name not in names and hasattr(obj, name)]

    names += [name for name in class_properties(cls) if name not in names]
    return names


def target_fields(obj: Any) -> Dict[str, Any]:
    """Settable fields of a target instance mapped to their annotations."""
    fields = dict(class_fields(type(obj)))
    if not isinstance(obj, BaseModel):
        for name in getattr(obj, "__dict__", {}):
            if not name.startswith("_"):
                fields.setdefault(name, Any)
    return fields


def construct(target_type: Any, path: str = "") -> Any:
    """Build a zero-initialised instance of ``target_type``.

    Pydantic models go through ``model_construct()`` so required fields do not
    have to be supplied up front; every other type is called with no arguments.

    Raises:
        TargetConstructionError: If the type needs constructor arguments
    """
    cls = unwrap(target_type)
    if not isinstance(cls, type):
        raise TargetConstructionError(target_type, path)
    try:
        if issubclass(cls, BaseModel):
            return cls.model_construct()
        return cls()
    except TypeError as exc:
        raise TargetConstructionError(cls, path) from exc


def is_assignable(value: Any, annotation: Any) -> bool:
    """Check a value against the runtime class of an annotation.

    ``None`` is always accepted, ``int`` is accepted where ``float`` or
    ``complex`` is declared, and annotations without a runtime class
    (``Any``, type variables, forward references) accept anything.
    """
    if value is None:
        return True
    annotation = unwrap(annotation)
    if annotation is Any or annotation is object or isinstance(annotation, TypeVar):
        return True

    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return any(is_assignable(value, member) for member in get_args(annotation))
    if origin is Literal:
        return value in get_args(annotation)
    if origin is not None:
        annotation = origin
    if not isinstance(annotation, type):
        return True

    if annotation is float:
        return isinstance(value, (int, float))
    if annotation is complex:
        return isinstance(value, (int, float, complex))
    try:
        return isinstance(value, annotation)
    except TypeError:
        # non runtime-checkable protocols
        return True


def is_primitive_value(value: Any) -> bool:
    """True when a runtime value is of a primitive type and cannot be mapped field by field."""
    marker = getattr(type(value), "__mapping_kind__", None)
    if marker is not None:
        return FieldKind(marker) is FieldKind.PRIMITIVE
    return isinstance(value, _primitive_bases)
