from __future__ import annotations

from typing import TYPE_CHECKING

from .models import TRACKED_AFFIXES, DungeonTotal, ProfileSummary

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import DungeonRun, RawProfile, RunMatrix


class ContractViolationError(RuntimeError):
    pass


def primary_index(
    matrix: RunMatrix, catalog: Sequence[str]
) -> dict[tuple[str, str], DungeonRun]:
    index: dict[tuple[str, str], DungeonRun] = {}
    for run in matrix.primary_rows():
        if run.sort_key in index:
            raise ContractViolationError(
                f"Run matrix for {matrix.character} has duplicate primary rows "
                f"for {run.dungeon} ({run.affix})"
            )
        index[run.sort_key] = run
    missing = [
        f"{dungeon} ({affix})"
        for dungeon in catalog
        for affix in TRACKED_AFFIXES
        if (dungeon, affix) not in index
    ]
    if missing:
        raise ContractViolationError(
            f"Run matrix for {matrix.character} is missing primary rows: "
            f"{', '.join(missing)}"
        )
    return index


def dungeon_totals(matrix: RunMatrix, catalog: Sequence[str]) -> list[DungeonTotal]:
    index = primary_index(matrix, catalog)
    return [
        DungeonTotal(
            dungeon=dungeon,
            score=sum(index[(dungeon, affix)].score for affix in TRACKED_AFFIXES),
        )
        for dungeon in catalog
    ]


def worst_dungeon(totals: Sequence[DungeonTotal]) -> DungeonTotal:
    if not totals:
        raise ContractViolationError("Cannot pick a worst dungeon from no totals")
    # min() keeps the first of equal scores, which is catalog order.
    return min(totals, key=lambda total: total.score)


def summarize_profile(
    profile: RawProfile, totals: Sequence[DungeonTotal]
) -> ProfileSummary:
    worst = worst_dungeon(totals)
    return ProfileSummary(
        name=profile.name,
        race=profile.race,
        class_name=profile.class_name,
        spec=profile.active_spec_name,
        faction=profile.faction,
        realm=profile.realm,
        total_score=sum(total.score for total in totals),
        worst_dungeon=worst.dungeon,
        worst_dungeon_score=worst.score,
    )


def aggregate(
    profile: RawProfile, matrix: RunMatrix, catalog: Sequence[str]
) -> tuple[list[DungeonTotal], ProfileSummary]:
    totals = dungeon_totals(matrix, catalog)
    return totals, summarize_profile(profile, totals)
