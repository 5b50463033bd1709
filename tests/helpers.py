"""Payload builders shaped like the ranking service's profile response."""

from __future__ import annotations

from typing import Any

CATALOG = [
    "Algeth'ar Academy",
    "Court of Stars",
    "Halls of Valor",
    "Ruby Life Pools",
    "Shadowmoon Burial Grounds",
    "Temple of the Jade Serpent",
    "The Azure Vault",
    "The Nokhud Offensive",
]


def run_payload(
    dungeon: str,
    affix: str,
    *,
    score: float = 500.0,
    level: int = 15,
    clear_time_ms: int = 1_500_000,
    par_time_ms: int = 1_800_000,
    completed_at: str = "2023-01-10T20:15:30.000Z",
) -> dict[str, Any]:
    return {
        "dungeon": dungeon,
        "short_name": dungeon[:3].upper(),
        "mythic_level": level,
        "completed_at": completed_at,
        "clear_time_ms": clear_time_ms,
        "par_time_ms": par_time_ms,
        "num_keystone_upgrades": 1,
        "score": score,
        "affixes": [
            {"id": 9, "name": affix},
            {"id": 7, "name": "Bolstering"},
            {"id": 2, "name": "Skittish"},
        ],
    }


def profile_payload(
    best: list[dict[str, Any]] | None = None,
    alternate: list[dict[str, Any]] | None = None,
    *,
    name: str = "Examplemage",
) -> dict[str, Any]:
    return {
        "name": name,
        "race": "Human",
        "class": "Mage",
        "active_spec_name": "Frost",
        "active_spec_role": "DPS",
        "gender": "female",
        "faction": "alliance",
        "region": "us",
        "realm": "Illidan",
        "profile_url": f"https://raider.io/characters/us/illidan/{name}",
        "mythic_plus_best_runs": best or [],
        "mythic_plus_alternate_runs": alternate or [],
    }


def full_best_runs(catalog: list[str], score: float = 250.0) -> list[dict[str, Any]]:
    return [
        run_payload(dungeon, affix, score=score)
        for dungeon in catalog
        for affix in ("Tyrannical", "Fortified")
    ]


class FakeResponse:
    """Stand-in for ``requests.Response``."""

    def __init__(
        self, status_code: int = 200, payload: Any = None, text: str = ""
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Stand-in for ``requests.Session`` answering from a name -> response map.

    Values may be ``FakeResponse`` objects or exceptions to raise.
    """

    def __init__(self, responses: dict[str, Any]) -> None:
        self.responses = responses
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, params: dict[str, str], timeout: float) -> FakeResponse:
        self.calls.append({"url": url, "params": dict(params), "timeout": timeout})
        outcome = self.responses.get(
            params["name"],
            FakeResponse(404, {"statusCode": 404, "message": "Not Found"}),
        )
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True
