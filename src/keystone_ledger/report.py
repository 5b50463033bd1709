"""Report sinks.

The pipeline hands finished data to a sink; sinks only lay values out. All
totals arrive precomputed, so nothing here depends on the catalog size.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from openpyxl import Workbook
from pydantic import BaseModel, Field

from .models import CharacterIdentity, CharacterReport, FailureKind
from .responses import APIResponse, failure_code

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from .models import DungeonRun, FetchFailure, PipelineResult, RunMatrix
    from .protocols import ReportSinkProtocol, StorageProtocol

NOT_ATTEMPTED = "Not attempted"

ROW_HEADERS = [
    "Dungeon",
    "Affix",
    "Key Level",
    "Completed",
    "Clear Time",
    "Par Time",
    "Remaining Time",
    "Score",
    "Category",
]
SUMMARY_HEADERS = [
    "Name",
    "Race",
    "Class",
    "Spec",
    "Faction",
    "Realm",
    "Total Score",
    "Worst Dungeon",
    "Worst Dungeon Score",
]
FAILURE_HEADERS = ["Name", "Realm", "Region", "Kind", "Code", "Message"]

_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_MAX_SHEET_TITLE = 31


class FailureEntry(BaseModel):
    identity: CharacterIdentity
    kind: FailureKind
    code: str = Field(..., description="Error code for the failure kind")
    message: str


class ReportDocument(BaseModel):
    reports: list[CharacterReport] = Field(default_factory=list)
    failures: list[FailureEntry] = Field(default_factory=list)


def failure_entry(failure: FetchFailure) -> FailureEntry:
    return FailureEntry(
        identity=failure.identity,
        kind=failure.kind,
        code=failure_code(failure.kind),
        message=failure.message,
    )


def run_row(run: DungeonRun) -> list[str | int]:
    def shown(value: str | int | None) -> str | int:
        return NOT_ATTEMPTED if value is None else value

    return [
        run.dungeon,
        run.affix,
        shown(run.key_level),
        shown(run.completed),
        shown(run.clear_time),
        shown(run.par_time),
        shown(run.remaining_time),
        run.score,
        run.category,
    ]


def matrix_rows(matrix: RunMatrix) -> list[list[str | int]]:
    return [run_row(run) for run in matrix.runs]


def sheet_title(name: str, taken: set[str]) -> str:
    base = _INVALID_SHEET_CHARS.sub("_", name).strip() or "Character"
    base = base[:_MAX_SHEET_TITLE]
    title = base
    suffix = 2
    while title.lower() in taken:
        marker = f" ({suffix})"
        title = base[: _MAX_SHEET_TITLE - len(marker)] + marker
        suffix += 1
    taken.add(title.lower())
    return title


class JsonReportSink:
    """Writes every report and failure into one enveloped JSON document."""

    def __init__(self, path: Path, *, run_id: str | None = None) -> None:
        self.path = path
        self.run_id = run_id
        self._document = ReportDocument()

    def write_character(self, report: CharacterReport) -> None:
        self._document.reports.append(report)

    def write_failures(self, failures: Sequence[FetchFailure]) -> None:
        self._document.failures.extend(failure_entry(item) for item in failures)

    def close(self) -> None:
        response = APIResponse[ReportDocument].success(
            self._document, run_id=self.run_id
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            response.model_dump_json(indent=2) + "\n", encoding="utf-8"
        )


class WorkbookReportSink:
    """Unstyled spreadsheet: Summary, one sheet per character, Failures."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._workbook = Workbook()
        self._summary = self._workbook.active
        self._summary.title = "Summary"
        self._summary.append(SUMMARY_HEADERS)
        self._summary.freeze_panes = "A2"
        self._titles: set[str] = {"summary", "failures"}

    def write_character(self, report: CharacterReport) -> None:
        summary = report.summary
        self._summary.append(
            [
                summary.name,
                summary.race,
                summary.class_name,
                summary.spec,
                summary.faction,
                summary.realm,
                summary.total_score,
                summary.worst_dungeon,
                summary.worst_dungeon_score,
            ]
        )

        title = sheet_title(f"{summary.name}-{report.identity.realm}", self._titles)
        sheet = self._workbook.create_sheet(title=title)
        sheet.append(ROW_HEADERS)
        for row in matrix_rows(report.matrix):
            sheet.append(row)
        sheet.freeze_panes = "A2"

        sheet.append([])
        sheet.append(["Dungeon", "Total Score"])
        for total in report.totals:
            sheet.append([total.dungeon, total.score])
        sheet.append(["Total", summary.total_score])

    def write_failures(self, failures: Sequence[FetchFailure]) -> None:
        sheet = self._workbook.create_sheet(title="Failures")
        sheet.append(FAILURE_HEADERS)
        for failure in failures:
            entry = failure_entry(failure)
            sheet.append(
                [
                    entry.identity.name,
                    entry.identity.realm,
                    entry.identity.region,
                    entry.kind,
                    entry.code,
                    entry.message,
                ]
            )

    def close(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._workbook.save(self.path)


class MultiReportSink:
    """Fans each call out to several sinks in order."""

    def __init__(self, *sinks: ReportSinkProtocol) -> None:
        self.sinks = list(sinks)

    def write_character(self, report: CharacterReport) -> None:
        for sink in self.sinks:
            sink.write_character(report)

    def write_failures(self, failures: Sequence[FetchFailure]) -> None:
        for sink in self.sinks:
            sink.write_failures(failures)

    def close(self) -> None:
        for sink in self.sinks:
            sink.close()


def format_text_summary(result: PipelineResult) -> str:
    lines = [f"Characters reported: {len(result.reports)}"]
    for report in result.reports:
        summary = report.summary
        lines.append(
            f"{summary.name} ({summary.realm}): {summary.total_score} total, "
            f"worst {summary.worst_dungeon} ({summary.worst_dungeon_score})"
        )
        missing = len(report.matrix.placeholder_rows())
        if missing:
            lines.append(f"  {missing} dungeon/affix pairs not done")
    if result.failures:
        lines.append(f"Failures: {len(result.failures)}")
        for failure in result.failures:
            lines.append(
                f"{failure.identity.name} ({failure.identity.realm}): "
                f"{failure.kind} - {failure.message}"
            )
    if result.aborted:
        lines.append("Run aborted before the end of the roster.")
    return "\n".join(lines) + "\n"


def write_text_summary(
    storage: StorageProtocol, path: Path, result: PipelineResult
) -> None:
    storage.write_text(path, format_text_summary(result))
