"""Behave wiring for the annotation scenarios under ``src/features``."""

from __future__ import annotations

import importlib
import importlib.util
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar, cast

from annotation_model.contracts import AnnotationInstance, AnnotationParameter

StepFunc = TypeVar("StepFunc", bound=Callable[..., Any])
StepDecorator = Callable[[str], Callable[[StepFunc], StepFunc]]


def _identity_step_decorator(_: str) -> Callable[[StepFunc], StepFunc]:
    def _decorator(func: StepFunc) -> StepFunc:
        return func

    return _decorator


# Step modules stay importable (e.g. by pytest collection) when behave is absent.
if importlib.util.find_spec("behave") is not None:
    _behave = importlib.import_module("behave")
    given = cast(StepDecorator, _behave.given)
    when = cast(StepDecorator, _behave.when)
    then = cast(StepDecorator, _behave.then)
else:
    given = _identity_step_decorator
    when = _identity_step_decorator
    then = _identity_step_decorator


@dataclass
class AnnotationStepState:
    name: str | None = None
    parameters: list[AnnotationParameter] = field(default_factory=list)
    instance: AnnotationInstance | None = None
    rendered: str | None = None
    error: Exception | None = None

    def build(self) -> AnnotationInstance:
        if self.name is None:
            raise AssertionError("an annotation name must be given before building")
        self.instance = AnnotationInstance(name=self.name, parameters=self.parameters)
        return self.instance


def get_annotation_step_state(context: Any) -> AnnotationStepState:
    state = getattr(context, "_annotation_step_state", None)
    if not isinstance(state, AnnotationStepState):
        state = AnnotationStepState()
        setattr(context, "_annotation_step_state", state)
    return state
