import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from scanhub.core.domain.models import Finding, ScanStatus, Severity
from scanhub.core.services import FindingAggregator
from scanhub.shared.to_jsonable import to_jsonable


def test_basic_types():
    assert to_jsonable(None) is None
    assert to_jsonable("x") == "x"
    assert to_jsonable(3) == 3
    assert to_jsonable(True) is True


def test_enums_dates_and_paths():
    assert to_jsonable(Severity.HIGH) == "high"
    assert to_jsonable(ScanStatus.CACHED) == "cached"
    assert to_jsonable(datetime(2024, 1, 2, tzinfo=timezone.utc)) == "2024-01-02T00:00:00+00:00"
    assert to_jsonable(Path("a/b")) == str(Path("a/b"))


def test_collections_and_enum_keys():
    assert to_jsonable((1, {2})) == [1, [2]]
    assert to_jsonable({Severity.LOW: (Severity.INFO,)}) == {"low": ["info"]}


def test_dataclass_with_json_properties():
    finding = Finding(rule_id="r", message="m", file_path="f", line=1, severity=Severity.MEDIUM, scanner_name="s")
    report = FindingAggregator().scanner_report(name="s", version="1", findings=[finding])

    data = to_jsonable(report)

    assert data["total_findings"] == 1
    assert data["breakdown"] == {"high": 0, "medium": 1, "low": 0, "info": 0, "total": 1}
    assert data["by_severity"]["medium"][0]["severity"] == "medium"
    json.dumps(data)


def test_plain_dataclass_and_unknown_objects():
    @dataclass
    class Point:
        x: int

    class Opaque:
        def __str__(self):
            return "opaque"

    assert to_jsonable(Point(1)) == {"x": 1}
    assert to_jsonable(Opaque()) == "opaque"
