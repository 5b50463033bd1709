from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils import merge_csv, normalize_name, normalize_slug

Affix = Literal["Fortified", "Tyrannical"]
RunCategory = Literal["Best", "Alternate", "NotDone"]
FailureKind = Literal[
    "NotFound", "ServiceError", "MalformedResponse", "ContractViolation"
]

TRACKED_AFFIXES: tuple[Affix, ...] = ("Tyrannical", "Fortified")
PRIMARY_CATEGORIES: frozenset[str] = frozenset({"Best", "NotDone"})

# Dragonflight season 1 rotation
DEFAULT_CATALOG: tuple[str, ...] = (
    "Algeth'ar Academy",
    "Court of Stars",
    "Halls of Valor",
    "Ruby Life Pools",
    "Shadowmoon Burial Grounds",
    "Temple of the Jade Serpent",
    "The Azure Vault",
    "The Nokhud Offensive",
)

DEFAULT_API_BASE_URL = "https://raider.io/api/v1"


class CharacterIdentity(BaseModel):
    """Lookup key for a character on the ranking service."""

    model_config = ConfigDict(frozen=True)

    region: Annotated[str, Field(min_length=1, description="Service region")]
    realm: Annotated[str, Field(min_length=1, description="Realm slug")]
    name: Annotated[str, Field(min_length=1, description="Character name")]

    @field_validator("region", mode="before")
    @classmethod
    def normalize_region(cls, value: str) -> str:
        return str(value).strip().lower()

    @field_validator("realm", mode="before")
    @classmethod
    def normalize_realm(cls, value: str) -> str:
        return normalize_slug(str(value))

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return normalize_name(str(value))

    @property
    def label(self) -> str:
        return f"{self.name}-{self.realm} ({self.region})"


class RawRun(BaseModel):
    """A single run entry exactly as the ranking service reports it."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    dungeon: Annotated[str, Field(min_length=1, description="Dungeon name")]
    affixes: tuple[str, ...] = Field(..., description="Affix names, primary first")
    mythic_level: int = Field(..., description="Keystone level")
    completed_at: datetime = Field(..., description="Completion timestamp")
    clear_time_ms: int = Field(..., description="Clear time in milliseconds")
    par_time_ms: int = Field(..., description="Par time in milliseconds")
    score: float = Field(..., description="Score awarded for the run")

    @field_validator("affixes", mode="before")
    @classmethod
    def extract_affix_names(cls, value: object) -> tuple[str, ...]:
        if not isinstance(value, (list, tuple)):
            raise ValueError("affixes must be a list")
        names: list[str] = []
        for item in value:
            name = item.get("name") if isinstance(item, dict) else item
            if not isinstance(name, str) or not name.strip():
                raise ValueError("affix entries must carry a name")
            names.append(name.strip())
        return tuple(names)

    @property
    def primary_affix(self) -> str | None:
        return self.affixes[0] if self.affixes else None


class RawProfile(BaseModel):
    """Character metadata plus the two raw run lists."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: Annotated[str, Field(min_length=1)]
    race: str
    class_name: str = Field(..., alias="class")
    active_spec_name: str
    faction: str
    realm: str
    best_runs: tuple[RawRun, ...] = Field(..., alias="mythic_plus_best_runs")
    alternate_runs: tuple[RawRun, ...] = Field(
        ..., alias="mythic_plus_alternate_runs"
    )


class DungeonRun(BaseModel):
    """One row of the run matrix. ``None`` timing fields mean not attempted."""

    model_config = ConfigDict(frozen=True)

    dungeon: str = Field(..., description="Dungeon name")
    affix: Affix = Field(..., description="Primary affix")
    key_level: int | None = Field(None, description="Keystone level")
    completed: str | None = Field(None, description="Completion date and time")
    clear_time: str | None = Field(None, description="Clear time hh:mm:ss")
    par_time: str | None = Field(None, description="Par time hh:mm:ss")
    remaining_time: str | None = Field(
        None, description="Signed par minus clear time"
    )
    score: Annotated[int, Field(ge=0, description="Rounded run score")] = 0
    category: RunCategory = Field(..., description="Best, Alternate or NotDone")

    @model_validator(mode="after")
    def validate_placeholder(self) -> DungeonRun:
        if self.category != "NotDone":
            return self
        attempted = (
            self.key_level,
            self.completed,
            self.clear_time,
            self.par_time,
            self.remaining_time,
        )
        if any(value is not None for value in attempted) or self.score != 0:
            raise ValueError("NotDone rows cannot carry run data")
        return self

    @property
    def is_primary(self) -> bool:
        return self.category in PRIMARY_CATEGORIES

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.dungeon, self.affix)


class RunMatrix(BaseModel):
    """Complete per-dungeon, per-affix run table for one character."""

    model_config = ConfigDict(frozen=True)

    character: str = Field(..., description="Character display name")
    runs: tuple[DungeonRun, ...] = Field(..., description="Sorted matrix rows")
    ignored_dungeons: tuple[str, ...] = Field(
        (), description="Service dungeons missing from the catalog"
    )

    def primary_rows(self) -> list[DungeonRun]:
        return [run for run in self.runs if run.is_primary]

    def alternate_rows(self) -> list[DungeonRun]:
        return [run for run in self.runs if run.category == "Alternate"]

    def placeholder_rows(self) -> list[DungeonRun]:
        return [run for run in self.runs if run.category == "NotDone"]


class DungeonTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    dungeon: str = Field(..., description="Dungeon name")
    score: int = Field(..., description="Tyrannical plus Fortified primary score")


class ProfileSummary(BaseModel):
    """Per-character rollup row."""

    model_config = ConfigDict(frozen=True)

    name: str
    race: str
    class_name: str
    spec: str
    faction: str
    realm: str
    total_score: int = Field(..., description="Sum of all dungeon totals")
    worst_dungeon: str = Field(..., description="Lowest scoring dungeon")
    worst_dungeon_score: int = Field(..., description="Total of the worst dungeon")


class CharacterReport(BaseModel):
    """Everything the report sink receives for one character."""

    model_config = ConfigDict(frozen=True)

    identity: CharacterIdentity
    matrix: RunMatrix
    totals: tuple[DungeonTotal, ...]
    summary: ProfileSummary


class FetchFailure(BaseModel):
    """A roster entry that could not be processed."""

    model_config = ConfigDict(frozen=True)

    identity: CharacterIdentity
    kind: FailureKind
    message: str


class PipelineResult(BaseModel):
    reports: list[CharacterReport] = Field(default_factory=list)
    failures: list[FetchFailure] = Field(default_factory=list)
    aborted: bool = Field(False, description="Run was stopped before the end")


class PipelineConfig(BaseModel):
    """Run-wide settings, loaded once and never mutated."""

    model_config = ConfigDict(frozen=True)

    region: Annotated[str, Field(min_length=1)] = "us"
    catalog: tuple[str, ...] = Field(
        DEFAULT_CATALOG, description="Dungeons in the current season rotation"
    )
    api_base_url: str = DEFAULT_API_BASE_URL
    extra_fields: str = Field("", description="Comma-separated extra fields")
    timeout_seconds: float = Field(10.0, gt=0, description="Per-request timeout")
    max_workers: int = Field(4, ge=1, le=8, description="Concurrent fetches")

    @field_validator("region", mode="before")
    @classmethod
    def normalize_region(cls, value: str) -> str:
        return str(value).strip().lower()

    @field_validator("catalog", mode="before")
    @classmethod
    def validate_catalog(cls, value: list[str] | tuple[str, ...]) -> tuple[str, ...]:
        if not isinstance(value, (list, tuple)):
            raise ValueError("catalog must be a list")
        cleaned = [str(item).strip() for item in value]
        if not cleaned or any(not item for item in cleaned):
            raise ValueError("catalog must contain non-empty dungeon names")
        duplicates = sorted({item for item in cleaned if cleaned.count(item) > 1})
        if duplicates:
            raise ValueError(f"catalog contains duplicates: {', '.join(duplicates)}")
        return tuple(cleaned)

    @field_validator("extra_fields", mode="before")
    @classmethod
    def normalize_extra_fields(cls, value: str | list[str] | None) -> str:
        return merge_csv(value)

    @field_validator("api_base_url", mode="before")
    @classmethod
    def strip_base_url(cls, value: str) -> str:
        return str(value).strip().rstrip("/")
