"""
classmeta distribution import namespace.

Re-exports the annotation value model from `annotation_model` so callers can
``from classmeta import AnnotationInstance``.
"""

from importlib.metadata import PackageNotFoundError, version

# src/classmeta/__init__.py
from annotation_model.contracts import (  # noqa: F401
    AbsentValue,
    AnnotationInstance,
    AnnotationParameter,
    AnnotationValue,
    ArrayValue,
    ClassRef,
    ClassValue,
    EnumConstantRef,
    EnumValue,
    ScalarKind,
    ScalarValue,
    StringValue,
    ValueEncoding,
    encode_value,
    unique_annotation_names_sorted,
    unwrap_value,
)
from annotation_model.errors import (  # noqa: F401
    AccessDenied,
    AnnotationModelError,
    AnnotationPayloadValidationError,
    ConstantNotFound,
    MalformedDescriptor,
    NestingTooDeep,
    NotAConstant,
    NotAnEnum,
    ResolutionError,
    TypeNotFound,
    UnsupportedValueKind,
)
from annotation_model.resolver import RegistryResolverContext, ResolverContext  # noqa: F401

try:
    from ._version import __version__  # canonical
except ImportError:  # pragma: no cover - fallback for editable/local non-built environments
    try:
        __version__ = version("classmeta")
    except PackageNotFoundError:
        __version__ = "0+unknown"
