"""Protocol interfaces for the pipeline's outside collaborators.

The ranking service, the report destination and file storage are injected
into the pipeline through these protocols so tests can swap in fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from .models import (
        CharacterIdentity,
        CharacterReport,
        FetchFailure,
        PipelineConfig,
        RawProfile,
    )


class ProfileFetcherProtocol(Protocol):
    """Protocol for retrieving a raw character profile."""

    def fetch_profile(
        self, identity: CharacterIdentity, extra_fields: str | None = None
    ) -> RawProfile:
        """Fetch one character profile.

        Raises:
            NotFoundError: Unknown character or realm.
            ServiceError: Transport failure, timeout or unexpected status.
            MalformedResponseError: Payload lacks required fields.
        """
        ...


class ReportSinkProtocol(Protocol):
    """Protocol for the reporting collaborator.

    The pipeline calls ``write_character`` in roster order, then
    ``write_failures`` once. ``close`` belongs to whoever built the sink.
    """

    def write_character(self, report: CharacterReport) -> None:
        """Accept one character's matrix, totals and summary."""
        ...

    def write_failures(self, failures: Sequence[FetchFailure]) -> None:
        """Accept every roster entry that could not be processed."""
        ...

    def close(self) -> None:
        """Flush output."""
        ...


class StorageProtocol(Protocol):
    """Combined protocol for configuration, roster and text output."""

    def load_config(self, path: Path) -> PipelineConfig:
        """Load pipeline configuration from path."""
        ...

    def load_roster(self, path: Path, region: str) -> list[CharacterIdentity]:
        """Load the roster from path."""
        ...

    def write_text(self, path: Path, content: str) -> None:
        """Write text to path."""
        ...
