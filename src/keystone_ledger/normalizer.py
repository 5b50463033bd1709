from __future__ import annotations

from typing import TYPE_CHECKING

from .fetcher import MalformedResponseError
from .models import TRACKED_AFFIXES, DungeonRun, RunMatrix
from .utils import format_completed_at, format_duration_ms, format_remaining_ms

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .models import RawProfile, RawRun, RunCategory


def to_dungeon_run(raw: RawRun, category: RunCategory) -> DungeonRun:
    affix = raw.primary_affix
    if affix not in TRACKED_AFFIXES:
        raise MalformedResponseError(
            f"Run for {raw.dungeon} has untracked primary affix: {affix}"
        )
    return DungeonRun(
        dungeon=raw.dungeon,
        affix=affix,
        key_level=raw.mythic_level,
        completed=format_completed_at(raw.completed_at),
        clear_time=format_duration_ms(raw.clear_time_ms),
        par_time=format_duration_ms(raw.par_time_ms),
        remaining_time=format_remaining_ms(raw.par_time_ms, raw.clear_time_ms),
        score=max(0, round(raw.score)),
        category=category,
    )


def placeholder_run(dungeon: str, affix: str) -> DungeonRun:
    return DungeonRun(dungeon=dungeon, affix=affix, category="NotDone")


def _convert(
    raws: Iterable[RawRun],
    category: RunCategory,
    catalog_set: set[str],
    ignored: list[str],
) -> list[DungeonRun]:
    rows: list[DungeonRun] = []
    for raw in raws:
        if raw.dungeon not in catalog_set:
            if raw.dungeon not in ignored:
                ignored.append(raw.dungeon)
            continue
        rows.append(to_dungeon_run(raw, category))
    return rows


def normalize_runs(
    character: str,
    best_runs: Sequence[RawRun],
    alternate_runs: Sequence[RawRun],
    catalog: Sequence[str],
) -> RunMatrix:
    """Expand raw runs into a complete dungeon x affix matrix.

    Every catalog dungeon gets one primary row per tracked affix: the Best run
    when the service reported one, otherwise a NotDone placeholder. Alternate
    runs are added as extra rows and never stand in for a missing Best run.
    Runs for dungeons outside the catalog are left out and listed in
    ``ignored_dungeons``.
    """
    catalog_set = set(catalog)
    ignored: list[str] = []
    best_rows = _convert(best_runs, "Best", catalog_set, ignored)
    alternate_rows = _convert(alternate_runs, "Alternate", catalog_set, ignored)

    covered = {row.sort_key for row in best_rows}
    placeholders = [
        placeholder_run(dungeon, affix)
        for dungeon in catalog
        for affix in TRACKED_AFFIXES
        if (dungeon, affix) not in covered
    ]

    rows = sorted(best_rows + alternate_rows + placeholders, key=lambda r: r.sort_key)
    return RunMatrix(
        character=character, runs=tuple(rows), ignored_dungeons=tuple(ignored)
    )


def normalize_profile(profile: RawProfile, catalog: Sequence[str]) -> RunMatrix:
    return normalize_runs(
        profile.name, profile.best_runs, profile.alternate_runs, catalog
    )
