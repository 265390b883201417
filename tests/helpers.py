from __future__ import annotations

from typing import Any

from clarity_rtc.pricing import PricingConfig

SCENARIO_RATES = PricingConfig(
    audio_input_cost=0.00004,
    audio_output_cost=0.00008,
    cached_audio_cost=0.0000025,
    text_input_cost=0.0000025,
    text_output_cost=0.00001,
)


class FakeClock:
    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def response_done(
    *,
    audio_in: int = 0,
    text_in: int = 0,
    cached: int | None = None,
    cached_audio: int | None = None,
    cached_text: int | None = None,
    audio_out: int = 0,
    text_out: int = 0,
) -> dict[str, Any]:
    input_details: dict[str, Any] = {"audio_tokens": audio_in, "text_tokens": text_in}
    if cached is not None:
        input_details["cached_tokens"] = cached
    if cached_audio is not None or cached_text is not None:
        input_details["cached_tokens_details"] = {
            "audio_tokens": cached_audio or 0,
            "text_tokens": cached_text or 0,
        }
    return {
        "type": "response.done",
        "response": {
            "id": "resp_1",
            "usage": {
                "input_token_details": input_details,
                "output_token_details": {"audio_tokens": audio_out, "text_tokens": text_out},
            },
        },
    }


def scenario_c_event() -> dict[str, Any]:
    return response_done(
        audio_in=100,
        text_in=20,
        cached=10,
        cached_audio=10,
        cached_text=0,
        audio_out=50,
        text_out=5,
    )


SPEECH_STARTED = {"type": "input_audio_buffer.speech_started"}
SPEECH_STOPPED = {"type": "input_audio_buffer.speech_stopped"}
AUDIO_DELTA = {"type": "response.audio.delta", "delta": "AAAA"}
AUDIO_DONE = {"type": "response.audio.done"}
