from __future__ import annotations

import csv
import json
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .models import CharacterIdentity, PipelineConfig
from .utils import normalize_name, normalize_slug

if TYPE_CHECKING:
    from pathlib import Path


class InputError(ValueError):
    pass


def load_pipeline_config(path: Path) -> PipelineConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise InputError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"Config JSON is invalid: {path}") from exc
    if not isinstance(data, dict):
        raise InputError(f"Config JSON must be an object: {path}")
    try:
        return PipelineConfig.model_validate(data)
    except ValidationError as exc:
        raise InputError(f"Config JSON failed validation: {path}: {exc}") from exc


def load_catalog_json(path: Path) -> list[str]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise InputError(f"Catalog file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"Catalog JSON is invalid: {path}") from exc
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise InputError("Catalog JSON must be a list of dungeon names")
    return data


def load_roster_csv(path: Path, region: str) -> list[CharacterIdentity]:
    """Read ``name,realm`` rows into identities, keeping file order."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise InputError(f"Roster file not found: {path}") from exc

    rows = list(csv.reader(text.splitlines()))
    if not rows:
        return []

    header = [cell.strip().lower() for cell in rows[0]]
    start_idx = 0
    if (
        len(header) >= 2
        and header[0] in {"name", "character"}
        and header[1] in {"realm", "server"}
    ):
        start_idx = 1

    roster: list[CharacterIdentity] = []
    seen: set[tuple[str, str]] = set()
    for line_no, row in enumerate(rows[start_idx:], start=start_idx + 1):
        if len(row) < 2:
            continue
        name = normalize_name(row[0])
        realm = normalize_slug(row[1])
        if not name or not realm:
            continue
        key = (name.lower(), realm)
        if key in seen:
            raise InputError(
                f"Roster contains duplicate character on line {line_no}: "
                f"{name}-{realm}"
            )
        seen.add(key)
        roster.append(CharacterIdentity(region=region, realm=realm, name=name))
    return roster


class FileStorage:
    """File-backed loaders and writers."""

    def load_config(self, path: Path) -> PipelineConfig:
        return load_pipeline_config(path)

    def load_roster(self, path: Path, region: str) -> list[CharacterIdentity]:
        return load_roster_csv(path, region)

    def write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
