"""Integration tests: ranking client -> pipeline -> report files."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from helpers import (
    FakeResponse,
    FakeSession,
    full_best_runs,
    profile_payload,
    run_payload,
)
from openpyxl import load_workbook

from keystone_ledger.core import run_pipeline
from keystone_ledger.fetcher import RankingClient
from keystone_ledger.io import FileStorage
from keystone_ledger.models import (
    CharacterIdentity,
    FetchFailure,
    PipelineConfig,
    PipelineResult,
)
from keystone_ledger.report import (
    JsonReportSink,
    MultiReportSink,
    WorkbookReportSink,
    write_text_summary,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def session(catalog: list[str]) -> FakeSession:
    others = [dungeon for dungeon in catalog if dungeon != "Halls of Valor"]
    mage = profile_payload(
        best=full_best_runs(others, score=200),
        alternate=[run_payload("Court of Stars", "Fortified", score=150)],
        name="Examplemage",
    )
    priest = profile_payload(best=full_best_runs(catalog, score=250), name="priest")
    return FakeSession(
        {
            "Examplemage": FakeResponse(200, mage),
            "priest": FakeResponse(200, priest),
        }
    )


@pytest.fixture
def roster() -> list[CharacterIdentity]:
    return [
        CharacterIdentity(region="us", realm="illidan", name="Examplemage"),
        CharacterIdentity(region="us", realm="illidan", name="Ghost"),
        CharacterIdentity(region="us", realm="area-52", name="Priest"),
    ]


def _run(tmp_path: Path, session: FakeSession, roster, catalog):
    client = RankingClient("https://example.test/api/v1", session=session)
    json_path = tmp_path / "out" / "report.json"
    workbook_path = tmp_path / "out" / "report.xlsx"
    sink = MultiReportSink(
        JsonReportSink(json_path, run_id="run42"), WorkbookReportSink(workbook_path)
    )
    result = run_pipeline(roster, PipelineConfig(catalog=catalog), client, sink)
    sink.close()
    return result, json_path, workbook_path


def test_json_report(
    tmp_path: Path, session: FakeSession, roster, catalog: list[str]
) -> None:
    result, json_path, _ = _run(tmp_path, session, roster, catalog)

    body = json.loads(json_path.read_text())

    assert body["error"] is None
    assert body["meta"]["run_id"] == "run42"
    reports = body["data"]["reports"]
    assert [r["summary"]["name"] for r in reports] == ["Examplemage", "priest"]
    mage = reports[0]
    assert mage["summary"]["worst_dungeon"] == "Halls of Valor"
    assert mage["summary"]["total_score"] == 7 * 400
    assert len(mage["matrix"]["runs"]) == 17
    failures = body["data"]["failures"]
    assert failures == [
        {
            "identity": {"region": "us", "realm": "illidan", "name": "Ghost"},
            "kind": "NotFound",
            "code": "FETCH_001",
            "message": failures[0]["message"],
        }
    ]
    assert len(result.reports) == 2


def test_case_toggle_retry_reaches_service(
    tmp_path: Path, session: FakeSession, roster, catalog: list[str]
) -> None:
    _run(tmp_path, session, roster, catalog)

    names = [call["params"]["name"] for call in session.calls]
    assert names.count("Priest") == 1
    assert names.count("priest") == 1
    assert names.count("Ghost") == 1
    assert names.count("ghost") == 1


def test_workbook_report(
    tmp_path: Path, session: FakeSession, roster, catalog: list[str]
) -> None:
    _, _, workbook_path = _run(tmp_path, session, roster, catalog)

    workbook = load_workbook(workbook_path)

    assert workbook.sheetnames == [
        "Summary",
        "Examplemage-illidan",
        "priest-area-52",
        "Failures",
    ]
    summary_rows = list(workbook["Summary"].iter_rows(values_only=True))
    assert summary_rows[0][0] == "Name"
    assert summary_rows[1][6] == 2800
    assert summary_rows[1][7] == "Halls of Valor"
    assert summary_rows[2][6] == 4000

    detail = list(workbook["Examplemage-illidan"].iter_rows(values_only=True))
    assert len(detail[0]) == 9
    halls = [row for row in detail[1:18] if row[0] == "Halls of Valor"]
    assert [row[8] for row in halls] == ["NotDone", "NotDone"]
    assert halls[0][2] == "Not attempted"
    assert detail[-1] == ("Total", 2800) + (None,) * 7

    failures = list(workbook["Failures"].iter_rows(values_only=True))
    assert failures[1][:5] == ("Ghost", "illidan", "us", "NotFound", "FETCH_001")


def test_text_summary(
    tmp_path: Path, session: FakeSession, roster, catalog: list[str]
) -> None:
    result, _, _ = _run(tmp_path, session, roster, catalog)
    path = tmp_path / "out" / "summary.txt"

    write_text_summary(FileStorage(), path, result)

    content = path.read_text()
    assert "Characters reported: 2" in content
    assert "Examplemage (Illidan): 2800 total, worst Halls of Valor (0)" in content
    assert "2 dungeon/affix pairs not done" in content
    assert "Failures: 1" in content
    assert "Ghost (illidan): NotFound" in content


def test_outputs_are_utf8(tmp_path: Path) -> None:
    identity = CharacterIdentity(region="eu", realm="Гордунни", name="Ёжик")
    failure = FetchFailure(identity=identity, kind="NotFound", message="нет")
    result = PipelineResult(failures=[failure])
    json_path = tmp_path / "out" / "report.json"
    summary_path = tmp_path / "out" / "summary.txt"

    sink = JsonReportSink(json_path, run_id="run42")
    sink.write_failures([failure])
    sink.close()
    write_text_summary(FileStorage(), summary_path, result)

    body = json.loads(json_path.read_bytes().decode("utf-8"))
    assert body["data"]["failures"][0]["identity"]["realm"] == "гордунни"
    summary = summary_path.read_bytes().decode("utf-8")
    assert "Ёжик (гордунни): NotFound - нет" in summary
