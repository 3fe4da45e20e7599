from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypedDict

import pytest
from typing_extensions import Unpack

from annotation_model.contracts import (
    AnnotationInstance,
    AnnotationParameter,
    ClassRef,
    EnumConstantRef,
)
from annotation_model.resolver import RegistryResolverContext


class RetentionPolicy(enum.Enum):
    SOURCE = "source"
    CLASS = "class"
    RUNTIME = "runtime"

    def describe(self) -> str:
        return f"retained at {self.value}"


class PlainMarker:
    RUNTIME = "not an enum member"


class AnnotationOverrides(TypedDict, total=False):
    name: str
    parameters: Mapping[str, Any] | Iterable[Any] | None


@pytest.fixture
def make_annotation() -> Callable[..., AnnotationInstance]:
    def _make_annotation(**overrides: Unpack[AnnotationOverrides]) -> AnnotationInstance:
        return AnnotationInstance(
            name=overrides.get("name", "Foo"),
            parameters=overrides.get("parameters"),
        )

    return _make_annotation


@pytest.fixture
def retention() -> AnnotationInstance:
    return AnnotationInstance(
        name="Retention",
        parameters=[
            AnnotationParameter(
                name="policy",
                value=EnumConstantRef(type_name="RetentionPolicy", constant_name="RUNTIME"),
            )
        ],
    )


@pytest.fixture
def rich_annotation() -> AnnotationInstance:
    nested = AnnotationInstance(name="Nested", parameters={"value": "inner"})
    return AnnotationInstance(
        name="Rich",
        parameters={
            "count": 3,
            "big": 2**40,
            "enabled": True,
            "ratio": 0.25,
            "label": 'say "hi"',
            "matrix": [[1, 2], [3]],
            "policy": EnumConstantRef(type_name="RetentionPolicy", constant_name="CLASS"),
            "target": ClassRef(type_descriptor="[Ljava/lang/String;"),
            "nested": nested,
            "missing": None,
        },
    )


@pytest.fixture
def registry() -> RegistryResolverContext:
    return RegistryResolverContext(
        types={
            "RetentionPolicy": RetentionPolicy,
            "PlainMarker": PlainMarker,
        }
    )


@pytest.fixture
def retention_policy_type() -> type[RetentionPolicy]:
    return RetentionPolicy
