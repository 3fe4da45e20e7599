"""Exception hierarchy for annotation value construction and resolution.

Construction-time failures (`UnsupportedValueKind`,
`AnnotationPayloadValidationError`, `NestingTooDeep`) surface while a value tree
is being built, rendered or compared. Resolution-time failures derive from
`ResolutionError` and are only raised by explicit ``resolve(...)`` calls.
"""

from __future__ import annotations


class AnnotationModelError(Exception):
    """Base class for every error raised by annotation_model."""


class UnsupportedValueKind(AnnotationModelError, TypeError):
    """Raised when a raw value matches no annotation value variant."""

    def __init__(self, type_name: str, detail: str | None = None):
        message = f"Unsupported annotation parameter value type: {type_name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.type_name = type_name
        self.detail = detail


class AnnotationPayloadValidationError(AnnotationModelError, ValueError):
    """Raised when a serialized annotation payload cannot be rehydrated."""


class NestingTooDeep(AnnotationModelError, RecursionError):
    def __init__(self, limit: int, operation: str):
        super().__init__(f"annotation value nesting exceeds {limit} levels during {operation}")
        self.limit = limit
        self.operation = operation


# ------------------------------------------------------------------------------
# Resolution tier
# ------------------------------------------------------------------------------


class ResolutionError(AnnotationModelError, LookupError):
    """Raised when a lazy enum or type reference cannot be dereferenced."""


class TypeNotFound(ResolutionError):
    def __init__(self, type_name: str):
        super().__init__(f"Could not resolve type {type_name}")
        self.type_name = type_name


class NotAnEnum(ResolutionError):
    def __init__(self, type_name: str, actual_kind: str | None = None):
        message = f"Class {type_name} is not an enum"
        if actual_kind:
            message = f"{message} (found {actual_kind})"
        super().__init__(message)
        self.type_name = type_name
        self.actual_kind = actual_kind


class ConstantNotFound(ResolutionError):
    def __init__(self, type_name: str, constant_name: str):
        super().__init__(f"Could not find enum constant {type_name}.{constant_name}")
        self.type_name = type_name
        self.constant_name = constant_name


class NotAConstant(ResolutionError):
    def __init__(self, type_name: str, constant_name: str, actual_kind: str | None = None):
        message = f"Field {type_name}.{constant_name} is not an enum constant"
        if actual_kind:
            message = f"{message} (found {actual_kind})"
        super().__init__(message)
        self.type_name = type_name
        self.constant_name = constant_name
        self.actual_kind = actual_kind


class AccessDenied(ResolutionError):
    def __init__(self, type_name: str, constant_name: str):
        super().__init__(f"Field {type_name}.{constant_name} is not accessible")
        self.type_name = type_name
        self.constant_name = constant_name


class MalformedDescriptor(ResolutionError, ValueError):
    def __init__(self, descriptor: str, position: int, reason: str):
        super().__init__(f"Malformed type descriptor {descriptor!r} at offset {position}: {reason}")
        self.descriptor = descriptor
        self.position = position
        self.reason = reason
