# annotation_model/adapters/persistence.py
from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple, Union

from pydantic import BaseModel

from annotation_model.contracts import AnnotationInstance
from annotation_model.errors import AnnotationPayloadValidationError

logger = logging.getLogger(__name__)

JsonObj = Dict[str, Any]
PathLike = Union[str, Path]

ANNOTATIONS_LOG_PATH = Path("artifacts/annotations.jsonl")


def _to_jsonable(x: Any) -> Any:
    if x is None:
        return None
    if isinstance(x, AnnotationInstance):
        return x.to_payload()
    if isinstance(x, BaseModel):
        return x.model_dump(mode="json")
    if isinstance(x, dict):
        return {str(k): _to_jsonable(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [_to_jsonable(v) for v in x]
    return x


def append_jsonl(path: PathLike, record: Any) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    obj = _to_jsonable(record)

    # enforce "one JSON object per line"
    line = json.dumps(obj, ensure_ascii=False)
    with p.open("a", encoding="utf-8") as f:
        f.write(line + "\n")


def read_jsonl(path: PathLike) -> Iterator[Tuple[JsonObj, JsonObj]]:
    """
    Yields (meta, obj) for each JSON object line.
    - meta includes line number and source path.
    - obj is the parsed dict.
    """
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            s = line.strip()
            if not s:
                continue
            obj = json.loads(s)
            if not isinstance(obj, dict):
                raise ValueError(f"Expected JSON object on line {lineno}, got {type(obj).__name__}")
            meta: JsonObj = {"path": str(p), "lineno": lineno}
            yield meta, obj


def append_annotation(path: PathLike = ANNOTATIONS_LOG_PATH, instance: AnnotationInstance | None = None) -> JsonObj:
    """Append one annotation payload and return a ``file@line`` evidence ref."""
    if instance is None:
        raise ValueError("append_annotation requires an annotation instance")
    p = Path(path)
    next_offset = 1
    if p.exists():
        next_offset = len(p.read_text(encoding="utf-8").splitlines()) + 1

    append_jsonl(p, instance)
    return {"kind": "jsonl", "ref": f"{p.name}@{next_offset}"}


def append_annotations(path: PathLike, instances: Iterable[AnnotationInstance]) -> list[JsonObj]:
    return [append_annotation(path, instance) for instance in instances]


def read_annotations(path: PathLike) -> Iterator[AnnotationInstance]:
    """Rehydrate persisted annotation payloads; malformed rows raise with their line number."""
    for meta, raw in read_jsonl(path):
        try:
            instance = AnnotationInstance.from_payload(raw)
        except AnnotationPayloadValidationError as exc:
            raise AnnotationPayloadValidationError(f"{meta['path']}:{meta['lineno']}: {exc}") from exc
        logger.debug("loaded @%s from %s:%s", instance.name, meta["path"], meta["lineno"])
        yield instance
