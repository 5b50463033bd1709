"""Pipeline driver.

Runs Fetch -> Normalize -> Aggregate for every roster entry. Fetches are
independent and run on a bounded thread pool; results are consumed in roster
order so the report sink sees the same order as the roster regardless of which
fetch finishes first. Normalization and aggregation stay on the calling thread.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from .fetcher import FetchError, NotFoundError
from .logging import Events
from .models import CharacterReport, FetchFailure, PipelineResult
from .normalizer import normalize_profile
from .scoring import ContractViolationError, aggregate
from .utils import toggle_first_case

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence

    from .logging import Logger
    from .models import CharacterIdentity, PipelineConfig, RawProfile
    from .protocols import ProfileFetcherProtocol, ReportSinkProtocol


def fetch_with_retry(
    fetcher: ProfileFetcherProtocol,
    identity: CharacterIdentity,
    extra_fields: str | None = None,
    logger: Logger | None = None,
) -> RawProfile:
    """Fetch a profile, retrying a not-found lookup once with the case of the
    first letter of the name toggled.

    The service sometimes misses capitalized names. Any failure of the retry
    is reported as ``NotFoundError`` carrying the retry's own message.
    """
    try:
        return fetcher.fetch_profile(identity, extra_fields)
    except NotFoundError:
        retry_name = toggle_first_case(identity.name)
        if retry_name == identity.name:
            raise
        if logger is not None:
            logger.warn(
                Events.FETCH_RETRY,
                f"{identity.label} not found; retrying as {retry_name}",
                phase="fetch",
                data={"name": identity.name, "retry_name": retry_name},
            )
        retry_identity = identity.model_copy(update={"name": retry_name})
        try:
            return fetcher.fetch_profile(retry_identity, extra_fields)
        except NotFoundError:
            raise
        except FetchError as exc:
            raise NotFoundError(
                f"Character not found: {identity.label}; retry as {retry_name} "
                f"failed: {exc}"
            ) from exc


def build_report(
    identity: CharacterIdentity, profile: RawProfile, catalog: Sequence[str]
) -> CharacterReport:
    matrix = normalize_profile(profile, catalog)
    totals, summary = aggregate(profile, matrix, catalog)
    return CharacterReport(
        identity=identity, matrix=matrix, totals=tuple(totals), summary=summary
    )


def _record_failure(
    failures: list[FetchFailure],
    identity: CharacterIdentity,
    exc: FetchError | ContractViolationError,
    logger: Logger | None,
) -> None:
    kind = "ContractViolation" if isinstance(exc, ContractViolationError) else exc.kind
    failure = FetchFailure(identity=identity, kind=kind, message=str(exc))
    failures.append(failure)
    if logger is None:
        return
    data: dict[str, str | int | float | bool | None] = {
        "name": identity.name,
        "realm": identity.realm,
        "kind": kind,
    }
    if kind == "ContractViolation":
        logger.error(Events.CHARACTER_FAILED, str(exc), phase="aggregate", data=data)
    else:
        logger.warn(Events.CHARACTER_FAILED, str(exc), phase="fetch", data=data)


def run_pipeline(
    roster: Sequence[CharacterIdentity],
    config: PipelineConfig,
    fetcher: ProfileFetcherProtocol,
    sink: ReportSinkProtocol,
    *,
    logger: Logger | None = None,
    cancel_event: threading.Event | None = None,
) -> PipelineResult:
    """Process the roster and forward results to the sink.

    Args:
        roster: Characters to process, in report order.
        config: Run-wide settings (catalog, extra fields, worker count).
        fetcher: Ranking service client.
        sink: Receives each successful report, then the failure list.
        logger: Optional structured logger.
        cancel_event: When set, the run stops before the next character.
            Fetches already in flight finish but are not reported.

    Returns:
        Reports and failures, both in roster order.
    """
    result = PipelineResult()
    if logger is not None:
        logger.info(
            Events.RUN_STARTED,
            f"Processing {len(roster)} characters",
            data={"roster": len(roster), "workers": config.max_workers},
        )

    with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
        futures = [
            executor.submit(
                fetch_with_retry, fetcher, identity, config.extra_fields, logger
            )
            for identity in roster
        ]
        for identity, future in zip(roster, futures, strict=True):
            if cancel_event is not None and cancel_event.is_set():
                result.aborted = True
                for pending in futures:
                    pending.cancel()
                break
            try:
                profile = future.result()
                report = build_report(identity, profile, config.catalog)
            except (FetchError, ContractViolationError) as exc:
                _record_failure(result.failures, identity, exc, logger)
                continue

            if report.matrix.ignored_dungeons and logger is not None:
                logger.warn(
                    Events.UNKNOWN_DUNGEONS,
                    f"{identity.label} has runs outside the catalog: "
                    f"{', '.join(report.matrix.ignored_dungeons)}",
                    phase="normalize",
                    data={"count": len(report.matrix.ignored_dungeons)},
                )
            sink.write_character(report)
            result.reports.append(report)
            if logger is not None:
                logger.info(
                    Events.CHARACTER_FETCHED,
                    f"{identity.label}: {report.summary.total_score} total",
                    phase="aggregate",
                    data={
                        "name": identity.name,
                        "total_score": report.summary.total_score,
                        "worst_dungeon": report.summary.worst_dungeon,
                    },
                )

    sink.write_failures(result.failures)
    if logger is not None:
        if result.aborted:
            logger.warn(
                Events.RUN_ABORTED,
                "Run aborted before the end of the roster",
                data={"reported": len(result.reports)},
            )
        logger.info(
            Events.RUN_COMPLETED,
            f"Reported {len(result.reports)} characters, "
            f"{len(result.failures)} failures",
            data={
                "reported": len(result.reports),
                "failed": len(result.failures),
            },
        )
    return result
