from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from annotation_model.config import default_settings
from annotation_model.contracts import AnnotationInstance, AnnotationValue, ArrayValue, ValueEncoding

logger = logging.getLogger(__name__)


class InvariantId(str, Enum):
    PARAMETERS_SORTED = "parameters_sorted.v1"
    UNIQUE_PARAMETER_NAMES = "unique_parameter_names.v1"
    NESTING_DEPTH_BOUNDED = "nesting_depth_bounded.v1"


class Flow(str, Enum):
    CONTINUE = "continue"
    STOP = "stop"


class Validity(str, Enum):
    VALID = "valid"
    DEGRADED = "degraded"
    INVALID = "invalid"


@dataclass(frozen=True)
class InvariantOutcome:
    invariant_id: InvariantId
    passed: bool
    reason: str
    flow: Flow
    validity: Validity
    code: str
    evidence: Sequence[Mapping[str, Any]] = field(default_factory=tuple)
    details: Mapping[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "invariant_id": self.invariant_id.value,
            "passed": self.passed,
            "reason": self.reason,
            "flow": self.flow.value,
            "validity": self.validity.value,
            "code": self.code,
            "evidence": [dict(item) for item in self.evidence],
            "details": dict(self.details),
        }


Checker = Callable[[AnnotationInstance], InvariantOutcome]


def _ok(invariant_id: InvariantId, code: str, details: Optional[Mapping[str, Any]] = None) -> InvariantOutcome:
    detail_map = dict(details or {})
    reason = str(detail_map.get("message") or code)
    return InvariantOutcome(
        invariant_id=invariant_id,
        passed=True,
        reason=reason,
        flow=Flow.CONTINUE,
        validity=Validity.VALID,
        code=code,
        details=detail_map,
    )


def check_parameters_sorted(instance: AnnotationInstance) -> InvariantOutcome:
    params = list(instance.parameters or ())
    for index, (left, right) in enumerate(zip(params, params[1:])):
        if left > right:
            return InvariantOutcome(
                invariant_id=InvariantId.PARAMETERS_SORTED,
                passed=False,
                reason="Annotation parameters are not in canonical order.",
                flow=Flow.STOP,
                validity=Validity.INVALID,
                code="parameters_out_of_order",
                evidence=({"kind": "annotation", "value": instance.name}, {"kind": "index", "value": index}),
                details={"left": left.name, "right": right.name},
            )
    return _ok(InvariantId.PARAMETERS_SORTED, "parameters_sorted", {"count": len(params)})


def check_unique_parameter_names(instance: AnnotationInstance) -> InvariantOutcome:
    """
    Duplicate names are tolerated by ordering (rendered-value tie-break) but
    usually mean the producer emitted the same element twice.
    """
    counts = Counter(instance.parameter_names)
    duplicates = sorted(name for name, count in counts.items() if count > 1)
    if not duplicates:
        return _ok(InvariantId.UNIQUE_PARAMETER_NAMES, "parameter_names_unique")

    logger.warning("@%s carries duplicate parameter names: %s", instance.name, ", ".join(duplicates))
    return InvariantOutcome(
        invariant_id=InvariantId.UNIQUE_PARAMETER_NAMES,
        passed=False,
        reason="Annotation carries more than one value for the same parameter name.",
        flow=Flow.CONTINUE,
        validity=Validity.DEGRADED,
        code="duplicate_parameter_names",
        evidence=tuple({"kind": "parameter", "value": name} for name in duplicates),
        details={"annotation": instance.name, "duplicates": duplicates},
    )


def _value_depth(value: ValueEncoding, limit: int, depth: int) -> int:
    if isinstance(value, ArrayValue):
        if depth > limit:
            return depth
        return max([depth, *(_value_depth(item, limit, depth + 1) for item in value.items)])
    if isinstance(value, AnnotationValue):
        return _instance_depth(value.annotation, limit, depth + 1)
    return 0


def _instance_depth(instance: AnnotationInstance, limit: int, depth: int) -> int:
    if depth > limit:
        return depth
    return max([depth, *(_value_depth(param.value, limit, depth) for param in instance.parameters or ())])


def check_nesting_depth_bounded(instance: AnnotationInstance) -> InvariantOutcome:
    limit = default_settings().max_nesting_depth
    depth = _instance_depth(instance, limit, 0)
    if depth <= limit:
        return _ok(InvariantId.NESTING_DEPTH_BOUNDED, "nesting_depth_within_bound", {"depth": depth, "limit": limit})
    return InvariantOutcome(
        invariant_id=InvariantId.NESTING_DEPTH_BOUNDED,
        passed=False,
        reason="Annotation value tree is nested deeper than the configured bound.",
        flow=Flow.STOP,
        validity=Validity.INVALID,
        code="nesting_too_deep",
        evidence=({"kind": "annotation", "value": instance.name},),
        details={"limit": limit},
    )


REGISTRY: dict[InvariantId, Checker] = {
    InvariantId.NESTING_DEPTH_BOUNDED: check_nesting_depth_bounded,
    InvariantId.PARAMETERS_SORTED: check_parameters_sorted,
    InvariantId.UNIQUE_PARAMETER_NAMES: check_unique_parameter_names,
}


def run_checkers(
    instance: AnnotationInstance,
    *,
    invariant_ids: Optional[Iterable[InvariantId]] = None,
) -> list[InvariantOutcome]:
    """Run the selected checks in registry order; the depth check short-circuits the rest."""
    selected = set(invariant_ids) if invariant_ids is not None else set(REGISTRY)
    outcomes: list[InvariantOutcome] = []
    for invariant_id, checker in REGISTRY.items():
        if invariant_id not in selected:
            continue
        outcome = checker(instance)
        outcomes.append(outcome)
        if invariant_id is InvariantId.NESTING_DEPTH_BOUNDED and outcome.flow == Flow.STOP:
            break
    return outcomes
