# annotation_model/adapters/import_resolver.py
from __future__ import annotations

import enum
import importlib
import logging
from dataclasses import dataclass, field
from typing import Any

from annotation_model.errors import (
    AccessDenied,
    ConstantNotFound,
    NotAConstant,
    TypeNotFound,
)
from annotation_model.type_signature import (
    ArrayTypeSignature,
    BaseTypeSignature,
    ClassTypeSignature,
    TypeSignature,
)

logger = logging.getLogger(__name__)

PYTHON_BASE_TYPES: dict[str, Any] = {
    "byte": int,
    "short": int,
    "int": int,
    "long": int,
    "boolean": bool,
    "float": float,
    "double": float,
    "char": str,
    "void": type(None),
}


def _import_longest_prefix(parts: list[str]) -> tuple[Any, list[str]]:
    for cut in range(len(parts), 0, -1):
        module_name = ".".join(parts[:cut])
        try:
            return importlib.import_module(module_name), parts[cut:]
        except ModuleNotFoundError as exc:
            # Only a missing prefix means "try a shorter one"; a module that fails
            # on its own imports is a real error.
            if exc.name is None or not module_name.startswith(exc.name):
                raise
    raise ModuleNotFoundError(parts[0])


@dataclass
class ImportResolverContext:
    """
    Resolve dotted names against the running interpreter via importlib.

    ``pkg.mod.Outer.Inner`` imports the longest importable module prefix and
    walks the remaining attributes. Descriptor-style ``$`` inner-class separators
    are treated as dots. Base types map to Python builtins and array signatures
    to nested ``list[...]`` aliases.
    """

    base_types: dict[str, Any] = field(default_factory=lambda: dict(PYTHON_BASE_TYPES))

    def resolve_type(self, name: str) -> Any:
        parts = [part for part in name.replace("$", ".").split(".") if part]
        if not parts:
            raise TypeNotFound(name)
        try:
            target, remainder = _import_longest_prefix(parts)
        except ModuleNotFoundError:
            logger.debug("no importable module prefix for %s", name)
            raise TypeNotFound(name) from None

        for attr in remainder:
            try:
                target = getattr(target, attr)
            except AttributeError:
                raise TypeNotFound(name) from None
        if not isinstance(target, type):
            raise TypeNotFound(name)
        return target

    def is_enum(self, type_: Any) -> bool:
        return isinstance(type_, type) and issubclass(type_, enum.Enum)

    def resolve_constant(self, type_: Any, constant_name: str) -> Any:
        type_name = f"{type_.__module__}.{type_.__qualname__}"
        if constant_name.startswith("_"):
            raise AccessDenied(type_name, constant_name)
        member = type_.__members__.get(constant_name)
        if member is not None:
            return member
        if not hasattr(type_, constant_name):
            raise ConstantNotFound(type_name, constant_name)
        candidate = getattr(type_, constant_name)
        raise NotAConstant(type_name, constant_name, type(candidate).__name__)

    def instantiate_from_signature(self, signature: TypeSignature) -> Any:
        if isinstance(signature, ArrayTypeSignature):
            resolved = self.instantiate_from_signature(signature.element_signature)
            for _ in range(signature.num_dimensions):
                resolved = list[resolved]  # type: ignore[valid-type]
            return resolved
        if isinstance(signature, BaseTypeSignature):
            try:
                return self.base_types[signature.type_name]
            except KeyError:
                raise TypeNotFound(signature.type_name) from None
        if isinstance(signature, ClassTypeSignature):
            return self.resolve_type(signature.class_name)
        raise TypeError(f"unsupported type signature {signature!r}")
