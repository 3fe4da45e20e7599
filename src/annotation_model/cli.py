from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from annotation_model.adapters.persistence import read_annotations
from annotation_model.contracts import unique_annotation_names_sorted
from annotation_model.errors import AnnotationModelError
from annotation_model.invariants import run_checkers
from annotation_model.stable_ids import stable_annotation_id

logger = logging.getLogger(__name__)


def _render(path: Path) -> list[str]:
    return [instance.render() for instance in read_annotations(path)]


def _names(path: Path) -> list[str]:
    return unique_annotation_names_sorted(read_annotations(path))


def _check(path: Path) -> list[str]:
    lines: list[str] = []
    for instance in read_annotations(path):
        report = {
            "annotation_id": stable_annotation_id(instance),
            "name": instance.name,
            "invariant_checks": [outcome.as_dict() for outcome in run_checkers(instance)],
        }
        lines.append(json.dumps(report, ensure_ascii=False, sort_keys=True))
    return lines


_COMMANDS = {
    "render": _render,
    "names": _names,
    "check": _check,
}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="classmeta-annotations",
        description="Inspect persisted annotation payloads (one JSON object per line).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level for diagnostics written to stderr.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("render", help="Print each annotation in @Name(...) form.").add_argument("path", type=Path)
    sub.add_parser("names", help="Print the distinct annotation names, sorted.").add_argument("path", type=Path)
    sub.add_parser("check", help="Print invariant outcomes per annotation as JSON lines.").add_argument(
        "path", type=Path
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        lines = _COMMANDS[args.command](args.path)
    except FileNotFoundError:
        logger.error("no such file: %s", args.path)
        return 2
    except (AnnotationModelError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    for line in lines:
        sys.stdout.write(line + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
