from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from clarity_rtc.errors import SnapshotStoreError
from clarity_rtc.telemetry.snapshot import SavedSession, SessionSnapshot

_TABLE = "sessions"
_TIMEOUT_SECONDS = 30
_MAX_ATTEMPTS = 4


def _is_transient(ex: BaseException) -> bool:
    if isinstance(ex, httpx.TransportError):
        return True
    if isinstance(ex, httpx.HTTPStatusError):
        return ex.response.status_code == 429 or ex.response.status_code >= 500
    return False


def _on_retry(retry_state) -> None:
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason} from snapshot store. Retrying in {wait:.1f}s (attempt {attempt}/{_MAX_ATTEMPTS})...")


def default_retry_kwargs() -> dict:
    return {
        "retry": retry_if_exception(_is_transient),
        "wait": wait_exponential(multiplier=0.5, min=0.5, max=8),
        "stop": stop_after_attempt(_MAX_ATTEMPTS),
        "before_sleep": _on_retry,
        "reraise": True,
    }


class SupabaseSnapshotStore:
    """Snapshot store backed by a Supabase (PostgREST) ``sessions`` table."""

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = f"{url.rstrip('/')}/rest/v1/{_TABLE}"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._transport = transport

    async def save(self, snapshot: SessionSnapshot) -> str:
        rows = await self._request(
            "POST",
            json=[snapshot.to_record()],
            headers={"Prefer": "return=representation"},
        )
        if not rows or "id" not in rows[0]:
            raise SnapshotStoreError("Snapshot store did not return the saved session id")
        return str(rows[0]["id"])

    async def list(self) -> list[SavedSession]:
        rows = await self._request("GET", params={"select": "*", "order": "created_at.desc"})
        sessions: list[SavedSession] = []
        for row in rows or []:
            try:
                sessions.append(
                    SavedSession(
                        id=str(row["id"]),
                        created_at=str(row.get("created_at", "")),
                        snapshot=SessionSnapshot.from_record(row),
                    )
                )
            except (AttributeError, KeyError, TypeError, ValueError) as ex:
                row_id = row.get("id") if isinstance(row, dict) else None
                logger.warning(f"Skipping unreadable saved session {row_id}: {type(ex).__name__}: {ex}")
        return sessions

    async def delete(self, session_id: str) -> None:
        await self._request("DELETE", params={"id": f"eq.{session_id}"})

    async def _request(
        self,
        method: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            return await self._send(method, params=params, json=json, headers=headers)
        except httpx.HTTPStatusError as ex:
            raise SnapshotStoreError(
                f"HTTP {ex.response.status_code} from snapshot store: {ex.response.text[:200]}"
            ) from ex
        except httpx.HTTPError as ex:
            raise SnapshotStoreError(f"Snapshot store request failed: {ex}") from ex

    @retry(**default_retry_kwargs())
    async def _send(
        self,
        method: str,
        *,
        params: dict[str, str] | None,
        json: Any,
        headers: dict[str, str] | None,
    ) -> Any:
        async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS, transport=self._transport) as client:
            response = await client.request(
                method,
                self._base_url,
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()
