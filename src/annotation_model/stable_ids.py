# annotation_model/stable_ids.py
from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any

from annotation_model.contracts import AnnotationInstance


def _sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _canon(obj: Any) -> str:
    """
    Canonical JSON string (stable across runs) for hashing.
    """
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def stable_annotation_id(instance: AnnotationInstance) -> str:
    """
    Content-derived id for an annotation occurrence.

    Hashes the serialized layout, whose parameter list is already sorted, so
    instances built from differently ordered parameters share one id.
    """
    return "ann_" + _sha256_hex(_canon(instance.to_payload()))


def stable_annotation_ids(instances: Iterable[AnnotationInstance]) -> dict[str, str]:
    """Map each distinct stable id to the rendered annotation it identifies."""
    out: dict[str, str] = {}
    for instance in instances:
        out.setdefault(stable_annotation_id(instance), instance.render())
    return out
