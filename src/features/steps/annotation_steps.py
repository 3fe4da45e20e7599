# features/steps/annotation_steps.py
from __future__ import annotations

from classmeta.bdd import get_annotation_step_state, given, then, when

from annotation_model.contracts import AnnotationParameter, EnumConstantRef
from annotation_model.errors import ResolutionError
from annotation_model.resolver import RegistryResolverContext


@given('an annotation named "{name}"')
def step_annotation_named(context, name):
    state = get_annotation_step_state(context)
    state.name = name
    state.parameters = []
    state.instance = None


@given('an int parameter "{param}" set to {value:d}')
def step_int_parameter(context, param, value):
    get_annotation_step_state(context).parameters.append(AnnotationParameter(name=param, value=value))


@given('an enum parameter "{param}" referring to "{qualified}"')
def step_enum_parameter(context, param, qualified):
    type_name, _, constant_name = qualified.rpartition(".")
    ref = EnumConstantRef(type_name=type_name, constant_name=constant_name)
    get_annotation_step_state(context).parameters.append(AnnotationParameter(name=param, value=ref))


@when('defaults "{first}" = {first_value:d} and "{second}" = "{second_value}" are merged')
def step_merge_defaults(context, first, first_value, second, second_value):
    state = get_annotation_step_state(context)
    instance = state.instance or state.build()
    state.instance = instance.merge_defaults({first: first_value, second: second_value})


@when("the annotation is rendered")
def step_render(context):
    state = get_annotation_step_state(context)
    instance = state.instance or state.build()
    state.rendered = instance.render()


@when('parameter "{param}" is resolved against an empty registry')
def step_resolve_parameter(context, param):
    state = get_annotation_step_state(context)
    instance = state.instance or state.build()
    ref = instance.get_parameter_value(param)
    try:
        ref.resolve(RegistryResolverContext())
    except ResolutionError as exc:
        state.error = exc
    else:
        state.error = None


@then('the rendering is "{expected}"')
def step_check_rendering(context, expected):
    state = get_annotation_step_state(context)
    assert state.rendered == expected.replace('\\"', '"'), f"{state.rendered!r} != {expected!r}"


@then('resolution fails with "{error_name}"')
def step_check_resolution_error(context, error_name):
    state = get_annotation_step_state(context)
    assert state.error is not None, "resolution was expected to fail"
    assert type(state.error).__name__ == error_name
