"""Exceptions raised by the domain mapper."""


class MappingError(Exception):
    """Base error for object mapping failures."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class TargetConstructionError(MappingError):
    """Raised when the target type cannot be built without arguments."""

    def __init__(self, target_type: type, path: str = ""):
        name = getattr(target_type, "__name__", repr(target_type))
        super().__init__(f"Cannot construct {name} with no arguments", path)
        self.target_type = target_type


class FieldAssignmentError(MappingError):
    """Raised when a mapped value cannot be set on the target field."""


class MappingCycleError(MappingError):
    """Raised when the source graph refers back to an object being mapped."""
