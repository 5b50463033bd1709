"""Ranking service client.

Fetches a character profile with its best and alternate keystone runs and
validates it into a ``RawProfile``. Failures are raised as typed
``FetchError`` subclasses; nothing is retried here.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, ClassVar

import requests
from pydantic import ValidationError

from .models import DEFAULT_API_BASE_URL, RawProfile
from .utils import merge_csv

if TYPE_CHECKING:
    from .models import CharacterIdentity, FailureKind

RUN_FIELDS = ("mythic_plus_best_runs", "mythic_plus_alternate_runs")
PROFILE_PATH = "/characters/profile"


class FetchError(Exception):
    kind: ClassVar[FailureKind] = "ServiceError"


class NotFoundError(FetchError):
    kind: ClassVar[FailureKind] = "NotFound"


class ServiceError(FetchError):
    kind: ClassVar[FailureKind] = "ServiceError"


class MalformedResponseError(FetchError):
    kind: ClassVar[FailureKind] = "MalformedResponse"


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or "")
    return ""


def _is_not_found(response: requests.Response, message: str) -> bool:
    if response.status_code == 404:
        return True
    return response.status_code == 400 and "could not find" in message.lower()


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors()[:5]:
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


class RankingClient:
    """Synchronous client for the ranking service profile endpoint.

    Each calling thread gets its own ``requests.Session``. A session passed
    in explicitly is shared by every thread.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        *,
        timeout_seconds: float = 10.0,
        extra_fields: str = "",
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.extra_fields = extra_fields
        self._session = session
        self._local = threading.local()
        self._owned: list[requests.Session] = []
        self._owned_lock = threading.Lock()

    def _thread_session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._owned_lock:
                self._owned.append(session)
        return session

    def build_params(
        self, identity: CharacterIdentity, extra_fields: str | None = None
    ) -> dict[str, str]:
        fields = merge_csv(RUN_FIELDS, self.extra_fields, extra_fields)
        return {
            "region": identity.region,
            "realm": identity.realm,
            "name": identity.name,
            "fields": fields,
        }

    def fetch_profile(
        self, identity: CharacterIdentity, extra_fields: str | None = None
    ) -> RawProfile:
        """Fetch one character profile.

        Args:
            identity: Region, realm and name to look up.
            extra_fields: Additional comma-separated response fields.

        Returns:
            Validated raw profile.

        Raises:
            NotFoundError: The service does not know the character or realm.
            ServiceError: Timeout, connection failure or unexpected status.
            MalformedResponseError: The payload lacks required fields.
        """
        url = f"{self.base_url}{PROFILE_PATH}"
        params = self.build_params(identity, extra_fields)
        try:
            response = self._thread_session().get(
                url, params=params, timeout=self.timeout_seconds
            )
        except requests.exceptions.Timeout as exc:
            raise ServiceError(
                f"Request for {identity.label} timed out after "
                f"{self.timeout_seconds:g}s"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise ServiceError(f"Request for {identity.label} failed: {exc}") from exc

        if not response.ok:
            message = _error_message(response)
            if _is_not_found(response, message):
                raise NotFoundError(
                    f"Character not found: {identity.label}"
                    + (f" ({message})" if message else "")
                )
            raise ServiceError(
                f"Service returned HTTP {response.status_code} for {identity.label}"
                + (f": {message}" if message else "")
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ServiceError(
                f"Service returned a non-JSON body for {identity.label}"
            ) from exc
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"Profile for {identity.label} is not a JSON object"
            )
        try:
            return RawProfile.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Profile for {identity.label} failed validation: "
                f"{_describe_validation_error(exc)}"
            ) from exc

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
        with self._owned_lock:
            for session in self._owned:
                session.close()
            self._owned.clear()
