import asyncio
import json
import unittest

import httpx

from clarity_rtc.errors import SnapshotStoreError
from clarity_rtc.pricing import DEFAULT_PRICING
from clarity_rtc.storage.supabase_store import SupabaseSnapshotStore
from clarity_rtc.telemetry.snapshot import SessionSnapshot
from clarity_rtc.telemetry.usage import TokenStats


def _snapshot() -> SessionSnapshot:
    return SessionSnapshot(
        name="remote",
        model="gpt-4o-realtime-preview-2024-12-17",
        voice="verse",
        prompt="Hi",
        pricing_config=DEFAULT_PRICING,
        session_stats=TokenStats(1, 2, 0, 3, 4, 0.1, 0.2, 0.30000000000000004),
    )


class SupabaseSnapshotStoreTests(unittest.TestCase):
    def test_save_posts_record_and_returns_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(201, json=[{**body[0], "id": "row-1", "created_at": "2024-01-01T00:00:00Z"}])

        store = SupabaseSnapshotStore("https://example.supabase.co/", "anon-key", transport=httpx.MockTransport(handler))
        session_id = asyncio.run(store.save(_snapshot()))

        self.assertEqual("row-1", session_id)
        request = seen[0]
        self.assertEqual("POST", request.method)
        self.assertEqual("https://example.supabase.co/rest/v1/sessions", str(request.url))
        self.assertEqual("anon-key", request.headers["apikey"])
        self.assertEqual("Bearer anon-key", request.headers["authorization"])
        self.assertEqual("return=representation", request.headers["prefer"])
        self.assertEqual("Hi", json.loads(request.content)[0]["bot_prompt"])

    def test_list_orders_newest_first_and_parses_rows(self) -> None:
        record = {**_snapshot().to_record(), "id": "row-9", "created_at": "2024-01-02T00:00:00Z"}

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual("created_at.desc", request.url.params["order"])
            self.assertEqual("*", request.url.params["select"])
            return httpx.Response(200, json=[record])

        store = SupabaseSnapshotStore("https://example.supabase.co", "k", transport=httpx.MockTransport(handler))
        saved = asyncio.run(store.list())

        self.assertEqual(["row-9"], [s.id for s in saved])
        self.assertEqual(_snapshot(), saved[0].snapshot)

    def test_delete_filters_by_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        store = SupabaseSnapshotStore("https://example.supabase.co", "k", transport=httpx.MockTransport(handler))
        asyncio.run(store.delete("row-3"))

        self.assertEqual("DELETE", seen[0].method)
        self.assertEqual("eq.row-3", seen[0].url.params["id"])

    def test_client_errors_are_not_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(401, json={"message": "invalid key"})

        store = SupabaseSnapshotStore("https://example.supabase.co", "k", transport=httpx.MockTransport(handler))
        with self.assertRaises(SnapshotStoreError) as ctx:
            asyncio.run(store.list())

        self.assertEqual(1, calls)
        self.assertIn("HTTP 401", str(ctx.exception))

    def test_unreadable_rows_are_skipped(self) -> None:
        good = {**_snapshot().to_record(), "id": "row-1", "created_at": "2024-01-02T00:00:00Z"}
        missing_start = {**good, "id": "row-2", "timeline_segments": [{"speaker": "user"}]}
        no_id = {key: value for key, value in good.items() if key != "id"}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[good, missing_start, no_id, "garbage"])

        store = SupabaseSnapshotStore("https://example.supabase.co", "k", transport=httpx.MockTransport(handler))
        saved = asyncio.run(store.list())

        self.assertEqual(["row-1"], [s.id for s in saved])

    def test_server_errors_are_retried(self) -> None:
        statuses = [503, 200]

        def handler(request: httpx.Request) -> httpx.Response:
            status = statuses.pop(0)
            return httpx.Response(status, json=[] if status == 200 else {"message": "busy"})

        store = SupabaseSnapshotStore("https://example.supabase.co", "k", transport=httpx.MockTransport(handler))
        self.assertEqual([], asyncio.run(store.list()))
        self.assertEqual([], statuses)


if __name__ == "__main__":
    unittest.main()
