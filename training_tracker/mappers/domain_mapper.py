"""Convention-based mapper between persistence entities and domain/view models.

Fields are matched purely by name. Nested models and collections of nested
models are mapped recursively; everything classified as primitive is copied
as-is. An optional override callback runs once after the automatic copy so
callers can fill in what the naming convention cannot express.

Example:
    >>> view = map_object(goal_entity, GoalView)
    >>> views = map_object(plan_entity.goals, list[GoalView])
    >>> view = map_object(
    ...     colleague_entity,
    ...     ColleagueView,
    ...     lambda src, dst: setattr(dst, "display_name", f"{src.first_name} {src.last_name}"),
    ... )
"""
import collections.abc
import logging
from typing import Any, Callable, Iterable, List, Optional, Set, Type, TypeVar, get_args

from training_tracker.core.config import settings
from training_tracker.core.errors import FieldAssignmentError, MappingCycleError, MappingError
from training_tracker.core.logging import get_logger
from training_tracker.mappers.introspection import (
    COLLECTION_FACTORIES,
    FieldKind,
    classify,
    collection_element_type,
    collection_origin,
    construct,
    is_assignable,
    is_primitive_value,
    source_fields,
    target_fields,
    unwrap,
)

T = TypeVar("T")
Override = Callable[[Any, Any], None]

logger = get_logger(__name__, {"component": "domain_mapper"})


def _type_name(value: Any) -> str:
    return getattr(value, "__name__", None) or repr(value)


class DomainMapper:
    """Copies same-named fields from a source object onto a target type.

    Attributes:
        detect_cycles: Raise MappingCycleError when a source object refers
            back to one that is still being mapped
        strict_assignment: Reject values whose runtime type does not match
            the target field's annotation
    """

    def __init__(
        self,
        detect_cycles: Optional[bool] = None,
        strict_assignment: Optional[bool] = None,
    ):
        self.detect_cycles = settings.mapper_detect_cycles if detect_cycles is None else detect_cycles
        self.strict_assignment = (
            settings.mapper_strict_assignment if strict_assignment is None else strict_assignment
        )

    def map(
        self,
        source: Any,
        target_type: Type[T],
        override: Optional[Override] = None,
        target: Optional[T] = None,
        *,
        exclude: Iterable[str] = (),
    ) -> Optional[T]:
        """Map ``source`` onto ``target_type``.

        Args:
            source: Object to read from, never modified. ``None`` maps to ``None``
            target_type: Class to map into, or a collection annotation such as
                ``list[GoalView]``
            override: Called once as ``override(source, target)`` after the
                automatic copy
            target: Existing instance to update in place instead of a new one
            exclude: Top-level field names to leave for the override

        Returns:
            The populated target, or None when source is None

        Raises:
            TargetConstructionError: If a target type needs constructor arguments
            FieldAssignmentError: If a value cannot be set on a target field
            MappingCycleError: If the source graph refers back to itself
        """
        if source is None:
            return None

        try:
            result = self._map(source, target_type, target, "", set(), frozenset(exclude))
        except MappingError as exc:
            logger.error(
                f"Mapping {type(source).__name__} to {_type_name(target_type)} failed: {exc}",
                extra={
                    "source_type": type(source).__name__,
                    "target_type": _type_name(target_type),
                    "path": exc.path,
                },
            )
            raise

        if override is not None:
            override(source, result)
        return result

    def map_many(
        self,
        sources: Optional[Iterable[Any]],
        target_type: Type[T],
        override: Optional[Override] = None,
    ) -> List[Optional[T]]:
        """Map every item of ``sources``, applying ``override`` to each result."""
        if sources is None:
            return []
        return [self.map(source, target_type, override) for source in sources]

    def _map(
        self,
        source: Any,
        target_type: Any,
        target: Any,
        path: str,
        active: Set[int],
        exclude: frozenset = frozenset(),
    ) -> Any:
        if source is None:
            return None

        if collection_origin(target_type) is not None:
            return self._map_collection(source, target_type, target, path, active)

        if is_primitive_value(source):
            raise FieldAssignmentError(
                f"Cannot map {type(source).__name__} at '{path or '<root>'}' onto {_type_name(target_type)}",
                path,
            )
        if target is None:
            target = construct(target_type, path)
        self._map_fields(source, target, path, active, exclude)
        return target

    def _map_fields(self, source: Any, target: Any, path: str, active: Set[int], exclude: frozenset) -> None:
        key = id(source)
        if self.detect_cycles:
            if key in active:
                raise MappingCycleError(
                    f"{type(source).__name__} at '{path or '<root>'}' refers back to an object already being mapped",
                    path,
                )
            active.add(key)

        try:
            fields = target_fields(target)
            logger.debug(
                f"Mapping {type(source).__name__} -> {type(target).__name__}",
                extra={
                    "source_type": type(source).__name__,
                    "target_type": type(target).__name__,
                    "path": path or "<root>",
                },
            )

            for name in source_fields(source):
                field_path = f"{path}.{name}" if path else name
                if name in exclude or name not in fields:
                    if logger.isEnabledFor(logging.DEBUG):
                        logger.debug(f"Skipping field {field_path}", extra={"field": name, "path": field_path})
                    continue

                annotation = fields[name]
                value = getattr(source, name)
                if classify(annotation) is not FieldKind.PRIMITIVE:
                    value = self._map(value, annotation, None, field_path, active)
                self._assign(target, name, value, annotation, field_path)
        finally:
            if self.detect_cycles:
                active.discard(key)

    def _map_collection(self, source: Any, target_type: Any, target: Any, path: str, active: Set[int]) -> Any:
        element_type = collection_element_type(target_type)
        if element_type is None and get_args(unwrap(target_type)):
            raise FieldAssignmentError(
                f"Cannot map {type(source).__name__} at '{path or '<root>'}' onto heterogeneous {_type_name(target_type)}",
                path,
            )

        if element_type is None or classify(element_type) is FieldKind.PRIMITIVE:
            if target is None:
                logger.debug(
                    f"Reusing {type(source).__name__} of primitives at {path or '<root>'}",
                    extra={"source_type": type(source).__name__, "path": path or "<root>"},
                )
                return source
            return self._extend(target, source, path)

        if isinstance(source, (str, bytes, dict)) or not isinstance(source, collections.abc.Iterable):
            raise FieldAssignmentError(
                f"Cannot map {type(source).__name__} at '{path or '<root>'}' onto {_type_name(target_type)}",
                path,
            )
        items = [
            self._map(item, element_type, None, f"{path}[{index}]", active)
            for index, item in enumerate(source)
        ]
        if target is None:
            factory = COLLECTION_FACTORIES[collection_origin(target_type)]
            try:
                return factory(items)
            except TypeError as exc:
                raise FieldAssignmentError(
                    f"Cannot collect mapped elements at '{path or '<root>'}' into {_type_name(target_type)}: {exc}",
                    path,
                ) from exc
        return self._extend(target, items, path)

    @staticmethod
    def _extend(target: Any, items: Iterable[Any], path: str) -> Any:
        if isinstance(target, collections.abc.MutableSequence):
            target.extend(items)
        elif isinstance(target, collections.abc.MutableSet):
            try:
                target.update(items)
            except TypeError as exc:
                raise FieldAssignmentError(
                    f"Cannot add elements to {type(target).__name__} at '{path or '<root>'}': {exc}",
                    path,
                ) from exc
        else:
            raise FieldAssignmentError(
                f"Cannot add elements to immutable {type(target).__name__} at '{path or '<root>'}'",
                path,
            )
        return target

    def _assign(self, target: Any, name: str, value: Any, annotation: Any, path: str) -> None:
        if self.strict_assignment and not is_assignable(value, annotation):
            raise FieldAssignmentError(
                f"Cannot assign {type(value).__name__} to '{path}' declared as {_type_name(annotation)}",
                path,
            )
        try:
            setattr(target, name, value)
        except (AttributeError, TypeError, ValueError) as exc:
            raise FieldAssignmentError(f"Cannot assign to '{path}': {exc}", path) from exc


# Default mapper configured from settings
domain_mapper = DomainMapper()


def map_object(
    source: Any,
    target_type: Type[T],
    override: Optional[Override] = None,
    target: Optional[T] = None,
    *,
    exclude: Iterable[str] = (),
) -> Optional[T]:
    """Map ``source`` onto ``target_type`` with the default mapper.

    See :meth:`DomainMapper.map`.
    """
    return domain_mapper.map(source, target_type, override, target, exclude=exclude)
