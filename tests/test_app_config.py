import os
import unittest
from unittest.mock import patch

from clarity_rtc.app_config import DEFAULT_MODEL, DEFAULT_PROMPT, parse_app_config, resolve_runtime_env
from clarity_rtc.pricing import DEFAULT_PRICING


class ParseAppConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        app = parse_app_config({})
        self.assertEqual(DEFAULT_MODEL, app.model)
        self.assertEqual("ash", app.voice)
        self.assertEqual(DEFAULT_PROMPT, app.prompt)
        self.assertEqual(DEFAULT_PRICING, app.pricing)
        self.assertEqual("sqlite", app.snapshot_store)
        self.assertEqual(0, app.replay_delay_ms)
        self.assertIsNone(app.log_sinks)

    def test_overrides(self) -> None:
        app = parse_app_config({
            "Model": "gpt-4o-mini-realtime-preview",
            "Voice": "Verse",
            "Pricing": {"audioOutputCost": 0.0002},
            "SnapshotStore": "none",
            "ReplayDelayMs": 25,
            "LogLevel": "DEBUG",
            "LogSinks": [{"type": "console"}],
        })
        self.assertEqual("verse", app.voice)
        self.assertEqual(0.0002, app.pricing.audio_output_cost)
        self.assertEqual(DEFAULT_PRICING.audio_input_cost, app.pricing.audio_input_cost)
        self.assertEqual("none", app.snapshot_store)
        self.assertEqual(25, app.replay_delay_ms)
        self.assertEqual([{"type": "console"}], app.log_sinks)

    def test_unknown_voice_is_rejected(self) -> None:
        with self.assertRaisesRegex(ValueError, "Unknown voice"):
            parse_app_config({"Voice": "alloy"})

    def test_unknown_snapshot_store_is_rejected(self) -> None:
        with self.assertRaisesRegex(ValueError, "Unknown snapshot store"):
            parse_app_config({"SnapshotStore": "redis"})

    def test_negative_rate_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_app_config({"Pricing": {"textInputCost": -1}})

    def test_runtime_env(self) -> None:
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-1", "SUPABASE_URL": "https://x"}, clear=True):
            env = resolve_runtime_env()
        self.assertEqual("sk-1", env.openai_api_key)
        self.assertEqual("https://x", env.supabase_url)
        self.assertIsNone(env.supabase_key)


if __name__ == "__main__":
    unittest.main()
