from __future__ import annotations

import pytest

from annotation_model.contracts import (
    AnnotationInstance,
    AnnotationParameter,
    ClassRef,
    EnumConstantRef,
    ScalarValue,
)


@pytest.mark.parametrize(
    ("value", "rendered"),
    [
        ('He said "hi"\n', '"He said \\"hi\\"\\n"'),
        ("line\r\nbreak", '"line\\r\\nbreak"'),
        (ScalarValue.of("char", "'"), "'\\''"),
        (ScalarValue.of("char", "\n"), "'\\n'"),
        (ScalarValue.of("char", '"'), "'\"'"),
        (5, "5"),
        (-(2**40), "-1099511627776"),
        (ScalarValue.of("byte", -3), "-3"),
        (1.5, "1.5"),
        (float("nan"), "NaN"),
        (float("inf"), "Infinity"),
        (float("-inf"), "-Infinity"),
        (ScalarValue.of("float", float("inf")), "Infinity"),
        (True, "true"),
        (False, "false"),
        (None, "null"),
        ([], "{}"),
        ([1, [2, 3]], "{1, {2, 3}}"),
        (["a", "b"], '{"a", "b"}'),
        (EnumConstantRef(type_name="ElementType", constant_name="METHOD"), "ElementType.METHOD"),
        (ClassRef(type_descriptor="[[Ljava/lang/String;"), "java.lang.String[][]"),
        (AnnotationInstance(name="Inner", parameters={"value": 1}), "@Inner(1)"),
    ],
)
def test_value_rendering(value: object, rendered: str) -> None:
    param = AnnotationParameter(name="p", value=value)
    assert param.render_value() == rendered
    assert param.render() == f"p = {rendered}"
    assert str(param) == f"p = {rendered}"


def test_parameters_order_by_name_first() -> None:
    params = [
        AnnotationParameter(name="value", value=1),
        AnnotationParameter(name="alpha", value=99),
        AnnotationParameter(name="beta", value="x"),
    ]
    assert [param.name for param in sorted(params)] == ["alpha", "beta", "value"]


def test_same_name_falls_back_to_rendered_value() -> None:
    ten = AnnotationParameter(name="a", value=10)
    two = AnnotationParameter(name="a", value=2)
    absent = AnnotationParameter(name="a")

    # "10" < "2" as text
    assert ten < two
    assert absent < ten
    assert absent.compare(AnnotationParameter(name="a", value=None)) == 0
    assert sorted([two, ten, absent]) == [absent, ten, two]


def test_parameter_equality_is_compare_zero() -> None:
    assert AnnotationParameter(name="a", value=1) == AnnotationParameter(name="a", value=1)
    assert AnnotationParameter(name="a", value=1) != AnnotationParameter(name="a", value="1")
    assert hash(AnnotationParameter(name="a", value=[1, 2])) == hash(AnnotationParameter(name="a", value=[1, 2]))


def test_parameter_order_is_a_strict_total_order() -> None:
    params = [
        AnnotationParameter(name="a"),
        AnnotationParameter(name="a", value=1),
        AnnotationParameter(name="a", value="1"),
        AnnotationParameter(name="a", value=[1]),
        AnnotationParameter(name="b", value=True),
        AnnotationParameter(name="b", value=EnumConstantRef(type_name="E", constant_name="X")),
    ]
    for x in params:
        for y in params:
            assert x.compare(y) == -y.compare(x)
            assert (x.compare(y) == 0) == (x == y)
            for z in params:
                if x.compare(y) < 0 and y.compare(z) < 0:
                    assert x.compare(z) < 0


def test_get_value_unwraps() -> None:
    assert AnnotationParameter(name="m", value=[[1], [2, 3]]).get_value() == [[1], [2, 3]]
    assert AnnotationParameter(name="m").get_value() is None
