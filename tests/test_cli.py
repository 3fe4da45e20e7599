from __future__ import annotations

import json
from pathlib import Path

import pytest

from annotation_model.adapters.persistence import append_annotations, append_jsonl
from annotation_model.cli import main
from annotation_model.contracts import AnnotationInstance


@pytest.fixture
def annotations_file(tmp_path: Path, retention, rich_annotation) -> Path:
    p = tmp_path / "annotations.jsonl"
    append_annotations(
        p,
        [
            retention,
            AnnotationInstance(name="Foo", parameters={"value": 5}),
            rich_annotation,
            AnnotationInstance(name="Foo", parameters={"value": 6}),
        ],
    )
    return p


def test_render_prints_one_line_per_annotation(annotations_file: Path, capsys, rich_annotation) -> None:
    assert main(["render", str(annotations_file)]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "@Retention(policy = RetentionPolicy.RUNTIME)",
        "@Foo(5)",
        rich_annotation.render(),
        "@Foo(6)",
    ]


def test_names_prints_distinct_sorted_names(annotations_file: Path, capsys) -> None:
    assert main(["names", str(annotations_file)]) == 0
    assert capsys.readouterr().out.splitlines() == ["Foo", "Retention", "Rich"]


def test_check_prints_json_reports(annotations_file: Path, capsys) -> None:
    assert main(["check", str(annotations_file)]) == 0

    reports = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [report["name"] for report in reports] == ["Retention", "Foo", "Rich", "Foo"]
    assert all(report["annotation_id"].startswith("ann_") for report in reports)
    assert reports[1]["annotation_id"] != reports[3]["annotation_id"]
    for report in reports:
        assert all(check["passed"] for check in report["invariant_checks"])


def test_missing_file_exits_2(tmp_path: Path, capsys) -> None:
    assert main(["render", str(tmp_path / "nope.jsonl")]) == 2
    assert capsys.readouterr().out == ""


def test_malformed_file_exits_1(tmp_path: Path, capsys) -> None:
    p = tmp_path / "annotations.jsonl"
    append_jsonl(p, {"name": "Foo", "parameters": [{"name": "value", "value": {"int": 1, "long": 1}}]})

    assert main(["check", str(p)]) == 1
    assert capsys.readouterr().out == ""


def test_invalid_json_exits_1(tmp_path: Path) -> None:
    p = tmp_path / "annotations.jsonl"
    p.write_text("{not json\n", encoding="utf-8")
    assert main(["names", str(p)]) == 1


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        main([])


def test_out_of_range_double_exits_1(tmp_path: Path, capsys) -> None:
    p = tmp_path / "annotations.jsonl"
    p.write_text(
        json.dumps({"name": "x", "parameters": [{"name": "value", "value": {"double": 10**400}}]}) + "\n",
        encoding="utf-8",
    )

    assert main(["render", str(p)]) == 1
    assert capsys.readouterr().out == ""
