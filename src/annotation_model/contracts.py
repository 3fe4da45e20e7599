# annotation_model/contracts.py
from __future__ import annotations

import logging
import math
import struct
from collections.abc import Iterable, Mapping
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from typing_extensions import Self

from annotation_model.config import default_settings
from annotation_model.errors import (
    AnnotationPayloadValidationError,
    MalformedDescriptor,
    NestingTooDeep,
    NotAnEnum,
    UnsupportedValueKind,
)
from annotation_model.type_signature import TypeSignature, parse_type_descriptor

if TYPE_CHECKING:
    from annotation_model.resolver import ResolverContext

logger = logging.getLogger(__name__)

JsonObj = dict[str, Any]

# ------------------------------------------------------------------------------
# Shared BaseModel config helpers
# ------------------------------------------------------------------------------

_IMMUTABLE_CONTRACT_CONFIG = ConfigDict(
    extra="forbid",
    use_enum_values=False,
    frozen=True,
)


def _check_depth(depth: int, operation: str) -> None:
    limit = default_settings().max_nesting_depth
    if depth > limit:
        raise NestingTooDeep(limit, operation)


def _type_name(raw: object) -> str:
    cls = type(raw)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _quote_string(text: str) -> str:
    return '"' + text.replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r") + '"'


def _quote_char(text: str) -> str:
    return "'" + text.replace("'", "\\'").replace("\n", "\\n").replace("\r", "\\r") + "'"


class _KeyOrdered:
    """Total order, equality and hash derived from one comparison key."""

    def _order_key(self, depth: int = 0) -> tuple[Any, ...]:
        raise NotImplementedError

    def compare(self, other: Any) -> int:
        if type(other) is not type(self):
            raise TypeError(f"cannot compare {type(self).__name__} with {type(other).__name__}")
        mine, theirs = self._order_key(), other._order_key()
        return (mine > theirs) - (mine < theirs)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.compare(other) < 0

    def __le__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.compare(other) <= 0

    def __gt__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.compare(other) > 0

    def __ge__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.compare(other) >= 0

    def __hash__(self) -> int:
        return hash(self._order_key())


# ------------------------------------------------------------------------------
# Lazy references into the external type system
# ------------------------------------------------------------------------------


class EnumConstantRef(_KeyOrdered, BaseModel):
    """An enum constant named by its declaring type and constant name."""

    model_config = _IMMUTABLE_CONTRACT_CONFIG
    type_name: str
    constant_name: str

    def _order_key(self, depth: int = 0) -> tuple[Any, ...]:
        return (self.type_name, self.constant_name)

    def resolve(self, resolver: ResolverContext) -> Any:
        """
        Look up the live enum constant. Runs on every call so the result reflects
        the resolver's current state; callers that need stability cache it.
        """
        logger.debug("resolving enum constant %s", self)
        type_ = resolver.resolve_type(self.type_name)
        if not resolver.is_enum(type_):
            raise NotAnEnum(self.type_name, "class" if isinstance(type_, type) else _type_name(type_))
        return resolver.resolve_constant(type_, self.constant_name)

    def __str__(self) -> str:
        return f"{self.type_name}.{self.constant_name}"


class ClassRef(_KeyOrdered, BaseModel):
    """
    A class literal stored as a type descriptor, e.g. ``[[Ljava/lang/String;``.

    Equality and order follow the parsed signature, so ``[Ljava/lang/String;``
    and ``java.lang.String[]`` are the same reference. An unparseable descriptor
    compares and renders by its raw text; only `type_signature` and `resolve`
    report it as malformed.
    """

    model_config = _IMMUTABLE_CONTRACT_CONFIG
    type_descriptor: str

    @cached_property
    def type_signature(self) -> TypeSignature:
        return parse_type_descriptor(self.type_descriptor)

    def _signature_or_none(self) -> TypeSignature | None:
        try:
            return self.type_signature
        except MalformedDescriptor:
            return None

    def _order_key(self, depth: int = 0) -> tuple[Any, ...]:
        signature = self._signature_or_none()
        if signature is None:
            return (1, self.type_descriptor)
        return (0, str(signature))

    def resolve(self, resolver: ResolverContext) -> Any:
        logger.debug("resolving class reference %s", self.type_descriptor)
        return resolver.instantiate_from_signature(self.type_signature)

    def __str__(self) -> str:
        signature = self._signature_or_none()
        return self.type_descriptor if signature is None else str(signature)


# ------------------------------------------------------------------------------
# Value encoding: one variant per supported value shape
# ------------------------------------------------------------------------------


class ScalarKind(str, Enum):
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    BOOLEAN = "boolean"
    FLOAT = "float"
    DOUBLE = "double"
    CHAR = "char"


_INTEGER_RANGES: dict[ScalarKind, tuple[int, int]] = {
    ScalarKind.BYTE: (-(2**7), 2**7 - 1),
    ScalarKind.SHORT: (-(2**15), 2**15 - 1),
    ScalarKind.INT: (-(2**31), 2**31 - 1),
    ScalarKind.LONG: (-(2**63), 2**63 - 1),
}


def _coerce_scalar(kind: ScalarKind, value: Any) -> bool | int | float | str:
    if kind is ScalarKind.BOOLEAN:
        if isinstance(value, bool):
            return value
    elif kind in _INTEGER_RANGES:
        if isinstance(value, int) and not isinstance(value, bool):
            low, high = _INTEGER_RANGES[kind]
            if not low <= value <= high:
                raise UnsupportedValueKind(_type_name(value), f"{value} out of range for {kind.value}")
            return value
    elif kind in (ScalarKind.FLOAT, ScalarKind.DOUBLE):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return float(value)
            except OverflowError:
                raise UnsupportedValueKind(_type_name(value), f"{value} out of range for {kind.value}") from None
    elif kind is ScalarKind.CHAR:
        if isinstance(value, str) and len(value) == 1:
            if ord(value) > 0xFFFF:
                raise UnsupportedValueKind("str", "char must be a single UTF-16 code unit")
            return value
    raise UnsupportedValueKind(_type_name(value), f"not a {kind.value} literal")


def _float_key(value: float) -> bytes:
    # every NaN is one value; 0.0 and -0.0 stay distinct
    return b"NaN" if math.isnan(value) else struct.pack(">d", value)


def _render_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


class _ValueBase(BaseModel):
    model_config = _IMMUTABLE_CONTRACT_CONFIG

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        raise NotImplementedError

    def unwrap(self) -> Any:
        raise NotImplementedError

    def render(self, depth: int = 0) -> str:
        raise NotImplementedError

    def to_payload(self, depth: int = 0) -> JsonObj:
        raise NotImplementedError

    @property
    def is_absent(self) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _ValueBase):
            return NotImplemented
        return self._structural_key() == other._structural_key()

    def __hash__(self) -> int:
        return hash(self._structural_key())

    def __str__(self) -> str:
        return self.render()


class ScalarValue(_ValueBase):
    kind: Literal["scalar"] = "scalar"
    scalar_kind: ScalarKind
    value: Union[bool, int, float, str]

    @model_validator(mode="before")
    @classmethod
    def _normalize_literal(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        kind = ScalarKind(data.get("scalar_kind"))
        return {**data, "scalar_kind": kind, "value": _coerce_scalar(kind, data.get("value"))}

    @classmethod
    def of(cls, kind: ScalarKind | str, value: Any) -> Self:
        return cls(scalar_kind=ScalarKind(kind), value=value)

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        literal = _float_key(self.value) if isinstance(self.value, float) else self.value
        return ("scalar", self.scalar_kind.value, literal)

    def unwrap(self) -> Any:
        return self.value

    def render(self, depth: int = 0) -> str:
        if self.scalar_kind is ScalarKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.scalar_kind is ScalarKind.CHAR:
            return _quote_char(str(self.value))
        if isinstance(self.value, float):
            return _render_float(self.value)
        return str(self.value)

    def to_payload(self, depth: int = 0) -> JsonObj:
        return {self.scalar_kind.value: self.value}


class StringValue(_ValueBase):
    kind: Literal["string"] = "string"
    value: str

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        return ("string", self.value)

    def unwrap(self) -> Any:
        return self.value

    def render(self, depth: int = 0) -> str:
        return _quote_string(self.value)

    def to_payload(self, depth: int = 0) -> JsonObj:
        return {"string": self.value}


class ArrayValue(_ValueBase):
    """Ordered elements; elements may themselves be arrays (multi-dimensional)."""

    kind: Literal["array"] = "array"
    items: tuple[ValueEncoding, ...] = ()

    @field_validator("items", mode="before")
    @classmethod
    def _encode_items(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(encode_value(item) for item in value)
        return value

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        _check_depth(depth, "compare")
        return ("array", tuple(item._structural_key(depth + 1) for item in self.items))

    def unwrap(self) -> Any:
        return [item.unwrap() for item in self.items]

    def render(self, depth: int = 0) -> str:
        _check_depth(depth, "render")
        return "{" + ", ".join(item.render(depth + 1) for item in self.items) + "}"

    def to_payload(self, depth: int = 0) -> JsonObj:
        _check_depth(depth, "serialize")
        return {"array": [item.to_payload(depth + 1) for item in self.items]}


class EnumValue(_ValueBase):
    kind: Literal["enum"] = "enum"
    ref: EnumConstantRef

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        return ("enum", self.ref._order_key())

    def unwrap(self) -> Any:
        return self.ref

    def render(self, depth: int = 0) -> str:
        return str(self.ref)

    def to_payload(self, depth: int = 0) -> JsonObj:
        return {"enum_value": {"type_name": self.ref.type_name, "constant_name": self.ref.constant_name}}


class ClassValue(_ValueBase):
    kind: Literal["class"] = "class"
    ref: ClassRef

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        return ("class", self.ref._order_key())

    def unwrap(self) -> Any:
        return self.ref

    def render(self, depth: int = 0) -> str:
        return str(self.ref)

    def to_payload(self, depth: int = 0) -> JsonObj:
        return {"class_ref": {"type_descriptor": self.ref.type_descriptor}}


class AnnotationValue(_ValueBase):
    kind: Literal["annotation"] = "annotation"
    annotation: AnnotationInstance

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        return ("annotation", self.annotation._order_key(depth + 1))

    def unwrap(self) -> Any:
        return self.annotation

    def render(self, depth: int = 0) -> str:
        return self.annotation.render(depth + 1)

    def to_payload(self, depth: int = 0) -> JsonObj:
        return {"annotation": self.annotation.to_payload(depth + 1)}


class AbsentValue(_ValueBase):
    """No value supplied; distinct from any scalar default."""

    kind: Literal["absent"] = "absent"

    @property
    def is_absent(self) -> bool:
        return True

    def _structural_key(self, depth: int = 0) -> tuple[Any, ...]:
        return ("absent",)

    def unwrap(self) -> Any:
        return None

    def render(self, depth: int = 0) -> str:
        return "null"

    def to_payload(self, depth: int = 0) -> JsonObj:
        return {}


ValueEncoding = Annotated[
    Union[ScalarValue, StringValue, ArrayValue, EnumValue, ClassValue, AnnotationValue, AbsentValue],
    Field(discriminator="kind"),
]

ABSENT = AbsentValue()


def encode_value(raw: Any, *, _depth: int = 0) -> ValueEncoding:
    """
    Build the value variant matching a raw, producer-decoded value.

    Python ints become ``int`` when they fit 32 bits and ``long`` otherwise,
    floats become ``double``. The other scalar kinds (byte, short, char, float)
    have no native Python spelling; producers pass them as `ScalarValue.of(...)`.
    """
    if raw is None:
        return ABSENT
    if isinstance(raw, _ValueBase):
        return raw
    if isinstance(raw, bool):
        return ScalarValue.of(ScalarKind.BOOLEAN, raw)
    if isinstance(raw, int):
        low, high = _INTEGER_RANGES[ScalarKind.INT]
        kind = ScalarKind.INT if low <= raw <= high else ScalarKind.LONG
        return ScalarValue.of(kind, raw)
    if isinstance(raw, float):
        return ScalarValue.of(ScalarKind.DOUBLE, raw)
    if isinstance(raw, str):
        return StringValue(value=raw)
    if isinstance(raw, EnumConstantRef):
        return EnumValue(ref=raw)
    if isinstance(raw, ClassRef):
        return ClassValue(ref=raw)
    if isinstance(raw, AnnotationInstance):
        return AnnotationValue(annotation=raw)
    if isinstance(raw, (list, tuple)):
        _check_depth(_depth, "encode")
        return ArrayValue(items=tuple(encode_value(item, _depth=_depth + 1) for item in raw))
    raise UnsupportedValueKind(_type_name(raw))


def unwrap_value(value: ValueEncoding) -> Any:
    """Concrete payload of a value; arrays come back as (nested) lists."""
    return value.unwrap()


# ------------------------------------------------------------------------------
# Serialized layout: exactly one alternative key per value, none for absent
# ------------------------------------------------------------------------------

_SCALAR_PAYLOAD_KEYS = frozenset(kind.value for kind in ScalarKind)
_PAYLOAD_KEYS = _SCALAR_PAYLOAD_KEYS | {"string", "array", "enum_value", "class_ref", "annotation"}


def value_from_payload(payload: Any, depth: int = 0) -> ValueEncoding:
    if payload is None:
        return ABSENT
    if not isinstance(payload, Mapping):
        raise AnnotationPayloadValidationError(
            f"value payload must be a mapping, got {_type_name(payload)}"
        )
    keys = set(payload)
    if not keys:
        return ABSENT
    unknown = keys - _PAYLOAD_KEYS
    if unknown:
        raise AnnotationPayloadValidationError(f"unknown value payload fields: {sorted(unknown)}")
    if len(keys) > 1:
        raise AnnotationPayloadValidationError(
            f"value payload must set exactly one field, got {sorted(keys)}"
        )

    (key,) = keys
    raw = payload[key]
    try:
        if key in _SCALAR_PAYLOAD_KEYS:
            return ScalarValue.of(key, raw)
        if key == "string":
            if not isinstance(raw, str):
                raise AnnotationPayloadValidationError(f"string payload must be a str, got {_type_name(raw)}")
            return StringValue(value=raw)
        if key == "array":
            if not isinstance(raw, list):
                raise AnnotationPayloadValidationError(f"array payload must be a list, got {_type_name(raw)}")
            _check_depth(depth, "deserialize")
            return ArrayValue(items=tuple(value_from_payload(item, depth + 1) for item in raw))
        if key == "enum_value":
            return EnumValue(ref=EnumConstantRef.model_validate(raw))
        if key == "class_ref":
            return ClassValue(ref=ClassRef.model_validate(raw))
        return AnnotationValue(annotation=AnnotationInstance.from_payload(raw, depth + 1))
    except (ValidationError, UnsupportedValueKind) as exc:
        raise AnnotationPayloadValidationError(f"invalid {key} payload: {exc}") from exc


# ------------------------------------------------------------------------------
# Parameters and annotation instances
# ------------------------------------------------------------------------------


class AnnotationParameter(_KeyOrdered, BaseModel):
    """
    One named value inside an annotation instance.

    Ordered by name; equal names fall back to the rendered value text. That
    tie-break only matters when a producer emits the same name twice with
    different values, which `invariants.check_unique_parameter_names` flags.
    """

    model_config = _IMMUTABLE_CONTRACT_CONFIG
    name: str
    value: ValueEncoding = ABSENT

    @field_validator("value", mode="before")
    @classmethod
    def _encode_value(cls, value: Any) -> Any:
        return encode_value(value)

    def _order_key(self, depth: int = 0) -> tuple[Any, ...]:
        if self.value.is_absent:
            return (self.name, (0,))
        return (self.name, (1, self.value.render(depth)))

    def get_value(self) -> Any:
        return self.value.unwrap()

    def render(self, depth: int = 0) -> str:
        return f"{self.name} = {self.render_value(depth)}"

    def render_value(self, depth: int = 0) -> str:
        return self.value.render(depth)

    def to_payload(self, depth: int = 0) -> JsonObj:
        return {"name": self.name, "value": self.value.to_payload(depth)}

    def __str__(self) -> str:
        return self.render()


ParameterLike = Union[AnnotationParameter, tuple[str, Any]]


def _coerce_parameter(item: Any) -> AnnotationParameter:
    if isinstance(item, AnnotationParameter):
        return item
    if isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], str):
        return AnnotationParameter(name=item[0], value=item[1])
    raise UnsupportedValueKind(_type_name(item), "expected an AnnotationParameter or a (name, value) pair")


def coerce_parameters(
    parameters: Mapping[str, Any] | Iterable[ParameterLike] | None,
) -> list[AnnotationParameter] | None:
    if parameters is None:
        return None
    if isinstance(parameters, Mapping):
        return [AnnotationParameter(name=name, value=value) for name, value in parameters.items()]
    return [_coerce_parameter(item) for item in parameters]


class AnnotationInstance(_KeyOrdered, BaseModel):
    """
    A named bundle of parameter values attached to one program element.

    ``parameters`` is ``None`` when no parameter information is known, which is
    distinct from an empty tuple and sorts before any present list. The tuple is
    always kept in `AnnotationParameter` order.
    """

    model_config = _IMMUTABLE_CONTRACT_CONFIG
    name: str
    parameters: tuple[AnnotationParameter, ...] | None = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _sort_parameters(cls, value: Any) -> Any:
        params = coerce_parameters(value)
        if params is None:
            return None
        return tuple(sorted(params))

    @classmethod
    def create(
        cls,
        name: str,
        parameters: Mapping[str, Any] | Iterable[ParameterLike] | None = None,
    ) -> Self:
        return cls(name=name, parameters=parameters)

    # -- queries ---------------------------------------------------------------

    @property
    def parameter_names(self) -> list[str]:
        return [param.name for param in self.parameters or ()]

    def get_parameter(self, name: str) -> AnnotationParameter | None:
        for param in self.parameters or ():
            if param.name == name:
                return param
        return None

    def get_parameter_value(self, name: str, default: Any = None) -> Any:
        param = self.get_parameter(name)
        return default if param is None else param.get_value()

    def resolve_annotation_type(self, resolver: ResolverContext) -> Any:
        logger.debug("resolving annotation type %s", self.name)
        return resolver.resolve_type(self.name)

    # -- default overlay -------------------------------------------------------

    def merge_defaults(
        self,
        defaults: Mapping[str, Any] | Iterable[ParameterLike] | None,
    ) -> AnnotationInstance:
        """
        Overlay the annotation type's declared defaults. Explicit values win on
        name collision, so re-applying the same defaults is a no-op.
        """
        default_params = coerce_parameters(defaults) or []
        if not default_params:
            return self

        merged: dict[str, ValueEncoding] = {param.name: param.value for param in default_params}
        for param in self.parameters or ():
            merged[param.name] = param.value

        logger.debug(
            "merged %d default(s) into @%s: %d explicit, %d effective",
            len(default_params),
            self.name,
            len(self.parameters or ()),
            len(merged),
        )
        return AnnotationInstance(
            name=self.name,
            parameters=[AnnotationParameter(name=name, value=value) for name, value in merged.items()],
        )

    # -- order / rendering -----------------------------------------------------

    def _order_key(self, depth: int = 0) -> tuple[Any, ...]:
        _check_depth(depth, "compare")
        if self.parameters is None:
            return (self.name, (0,))
        return (self.name, (1, tuple(param._order_key(depth) for param in self.parameters)))

    def render(self, depth: int = 0) -> str:
        _check_depth(depth, "render")
        text = "@" + self.name
        params = self.parameters
        if not params:
            return text
        if len(params) == 1 and params[0].name == default_settings().single_element_name:
            return f"{text}({params[0].render_value(depth)})"
        return f"{text}({', '.join(param.render(depth) for param in params)})"

    def __str__(self) -> str:
        return self.render()

    # -- serialized layout -----------------------------------------------------

    def to_payload(self, depth: int = 0) -> JsonObj:
        _check_depth(depth, "serialize")
        params = None if self.parameters is None else [param.to_payload(depth) for param in self.parameters]
        return {"name": self.name, "parameters": params}

    @classmethod
    def from_payload(cls, payload: Any, depth: int = 0) -> Self:
        if not isinstance(payload, Mapping):
            raise AnnotationPayloadValidationError(
                f"annotation payload must be a mapping, got {_type_name(payload)}"
            )
        unknown = set(payload) - {"name", "parameters"}
        if unknown:
            raise AnnotationPayloadValidationError(f"unknown annotation payload fields: {sorted(unknown)}")
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise AnnotationPayloadValidationError("annotation payload requires a non-empty string name")
        _check_depth(depth, "deserialize")

        raw_params = payload.get("parameters")
        if raw_params is None:
            return cls(name=name, parameters=None)
        if not isinstance(raw_params, list):
            raise AnnotationPayloadValidationError("annotation parameters must be a list or null")

        params: list[AnnotationParameter] = []
        for raw in raw_params:
            if not isinstance(raw, Mapping) or not isinstance(raw.get("name"), str):
                raise AnnotationPayloadValidationError("each parameter payload requires a string name")
            extra = set(raw) - {"name", "value"}
            if extra:
                raise AnnotationPayloadValidationError(f"unknown parameter payload fields: {sorted(extra)}")
            params.append(AnnotationParameter(name=raw["name"], value=value_from_payload(raw.get("value"), depth)))
        return cls(name=name, parameters=params)


def unique_annotation_names_sorted(instances: Iterable[AnnotationInstance] | None) -> list[str]:
    """Distinct annotation names in ascending order; empty for None or empty input."""
    if instances is None:
        return []
    return sorted({instance.name for instance in instances})


for _model in (ArrayValue, AnnotationValue, AnnotationParameter, AnnotationInstance):
    _model.model_rebuild()
