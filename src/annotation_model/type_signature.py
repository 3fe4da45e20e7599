"""
Type signatures for class literals stored in annotation parameters.

Compiled metadata stores a class literal as a field descriptor, e.g.
``[[Ljava/lang/String;`` for a two-dimensional String array or ``I`` for ``int``.
Producers may also hand over the already-dotted form (``java.lang.String[][]``).
Both parse into the same frozen signature objects, so two spellings of one type
compare equal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from annotation_model.errors import MalformedDescriptor

BASE_TYPE_CODES: dict[str, str] = {
    "B": "byte",
    "C": "char",
    "D": "double",
    "F": "float",
    "I": "int",
    "J": "long",
    "S": "short",
    "Z": "boolean",
    "V": "void",
}
BASE_TYPE_NAMES = frozenset(BASE_TYPE_CODES.values())

_IDENTIFIER = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")


@dataclass(frozen=True)
class BaseTypeSignature:
    type_name: str

    def __str__(self) -> str:
        return self.type_name


@dataclass(frozen=True)
class ClassTypeSignature:
    class_name: str

    def __str__(self) -> str:
        return self.class_name


@dataclass(frozen=True)
class ArrayTypeSignature:
    element_signature: BaseTypeSignature | ClassTypeSignature
    num_dimensions: int

    def __str__(self) -> str:
        return str(self.element_signature) + "[]" * self.num_dimensions


TypeSignature = Union[BaseTypeSignature, ClassTypeSignature, ArrayTypeSignature]


def _wrap_array(
    element: BaseTypeSignature | ClassTypeSignature, dims: int
) -> TypeSignature:
    if dims == 0:
        return element
    return ArrayTypeSignature(element_signature=element, num_dimensions=dims)


def _check_class_name(descriptor: str, name: str, offset: int) -> None:
    pos = offset
    for segment in name.split("."):
        if not _IDENTIFIER.fullmatch(segment):
            raise MalformedDescriptor(descriptor, pos, f"invalid class name segment {segment!r}")
        pos += len(segment) + 1


def _parse_field_descriptor(descriptor: str) -> TypeSignature:
    dims = 0
    while dims < len(descriptor) and descriptor[dims] == "[":
        dims += 1
    if dims == len(descriptor):
        raise MalformedDescriptor(descriptor, dims, "missing element type")

    head = descriptor[dims]
    if head == "L":
        end = descriptor.find(";", dims)
        if end < 0:
            raise MalformedDescriptor(descriptor, len(descriptor), "unterminated class type, expected ';'")
        if end != len(descriptor) - 1:
            raise MalformedDescriptor(descriptor, end + 1, "trailing characters after class type")
        internal_name = descriptor[dims + 1 : end]
        if not internal_name:
            raise MalformedDescriptor(descriptor, dims + 1, "empty class name")
        class_name = internal_name.replace("/", ".")
        if class_name in BASE_TYPE_NAMES:
            raise MalformedDescriptor(descriptor, dims + 1, f"base type {class_name!r} cannot be a class type")
        _check_class_name(descriptor, class_name, dims + 1)
        return _wrap_array(ClassTypeSignature(class_name), dims)

    base = BASE_TYPE_CODES.get(head)
    if base is None:
        raise MalformedDescriptor(descriptor, dims, f"unknown type code {head!r}")
    if dims + 1 != len(descriptor):
        raise MalformedDescriptor(descriptor, dims + 1, "trailing characters after base type")
    if base == "void" and dims:
        raise MalformedDescriptor(descriptor, dims, "void cannot be an array element")
    return _wrap_array(BaseTypeSignature(base), dims)


def _parse_source_form(descriptor: str) -> TypeSignature:
    name = descriptor
    dims = 0
    while name.endswith("[]"):
        name = name[:-2]
        dims += 1
    if not name:
        raise MalformedDescriptor(descriptor, 0, "missing element type")
    if name in BASE_TYPE_NAMES:
        if name == "void" and dims:
            raise MalformedDescriptor(descriptor, len(name), "void cannot be an array element")
        return _wrap_array(BaseTypeSignature(name), dims)
    _check_class_name(descriptor, name, 0)
    return _wrap_array(ClassTypeSignature(name), dims)


def _looks_like_field_descriptor(descriptor: str) -> bool:
    if descriptor.startswith("["):
        return True
    if len(descriptor) == 1 and descriptor in BASE_TYPE_CODES:
        return True
    return descriptor.startswith("L") and descriptor.endswith(";")


def parse_type_descriptor(descriptor: str) -> TypeSignature:
    """Parse a field descriptor (or its dotted source form) into a signature."""
    text = descriptor.strip()
    if not text:
        raise MalformedDescriptor(descriptor, 0, "empty descriptor")
    if _looks_like_field_descriptor(text):
        return _parse_field_descriptor(text)
    return _parse_source_form(text)
