from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

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


class ResolverContext(Protocol):
    """Collaborator that turns textual type and constant names into live objects."""

    def resolve_type(self, name: str) -> Any:
        """Return the type registered under ``name`` or raise TypeNotFound."""
        ...

    def is_enum(self, type_: Any) -> bool:
        ...

    def resolve_constant(self, type_: Any, constant_name: str) -> Any:
        """Return the constant or raise ConstantNotFound / NotAConstant / AccessDenied."""
        ...

    def instantiate_from_signature(self, signature: TypeSignature) -> Any:
        """Map a parsed type signature to a concrete type or raise TypeNotFound."""
        ...


@dataclass(frozen=True)
class ArrayType:
    """Concrete array type produced for array signatures."""

    element_type: Any
    num_dimensions: int


def _type_label(type_: Any) -> str:
    return getattr(type_, "__qualname__", None) or str(type_)


def is_enum_constant(type_: Any, candidate: Any) -> bool:
    if isinstance(type_, type) and issubclass(type_, enum.Enum):
        return isinstance(candidate, type_)
    return False


@dataclass
class RegistryResolverContext:
    """
    In-memory resolver over an explicit name -> type registry.

    Enum types are detected by `enum.Enum` subclassing or by listing their names
    in ``enum_types``; for the latter, constants are looked up in
    ``constants[type_name]``. Names with a leading underscore are not accessible.
    """

    types: dict[str, Any] = field(default_factory=dict)
    enum_types: set[str] = field(default_factory=set)
    constants: dict[str, Mapping[str, Any]] = field(default_factory=dict)
    base_types: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_types(cls, types: Iterable[Any]) -> RegistryResolverContext:
        registry = {f"{t.__module__}.{t.__qualname__}": t for t in types}
        registry.update({t.__qualname__: t for t in types})
        return cls(types=registry)

    def register(self, name: str, type_: Any) -> None:
        self.types[name] = type_

    def _name_of(self, type_: Any) -> str:
        for name, registered in self.types.items():
            if registered is type_:
                return name
        return _type_label(type_)

    def resolve_type(self, name: str) -> Any:
        try:
            return self.types[name]
        except KeyError:
            logger.debug("type %s not registered", name)
            raise TypeNotFound(name) from None

    def is_enum(self, type_: Any) -> bool:
        if isinstance(type_, type) and issubclass(type_, enum.Enum):
            return True
        return self._name_of(type_) in self.enum_types

    def resolve_constant(self, type_: Any, constant_name: str) -> Any:
        type_name = self._name_of(type_)
        if constant_name.startswith("_"):
            raise AccessDenied(type_name, constant_name)

        if type_name in self.constants:
            table = self.constants[type_name]
            if constant_name not in table:
                raise ConstantNotFound(type_name, constant_name)
            return table[constant_name]

        if isinstance(type_, type) and issubclass(type_, enum.Enum):
            member = type_.__members__.get(constant_name)
            if member is not None:
                return member
        if not hasattr(type_, constant_name):
            raise ConstantNotFound(type_name, constant_name)
        candidate = getattr(type_, constant_name)
        if not is_enum_constant(type_, candidate):
            raise NotAConstant(type_name, constant_name, type(candidate).__name__)
        return candidate

    def instantiate_from_signature(self, signature: TypeSignature) -> Any:
        if isinstance(signature, ArrayTypeSignature):
            element = self.instantiate_from_signature(signature.element_signature)
            return ArrayType(element_type=element, num_dimensions=signature.num_dimensions)
        if isinstance(signature, BaseTypeSignature):
            if signature.type_name in self.base_types:
                return self.base_types[signature.type_name]
            return self.resolve_type(signature.type_name)
        if isinstance(signature, ClassTypeSignature):
            return self.resolve_type(signature.class_name)
        raise TypeError(f"unsupported type signature {signature!r}")
