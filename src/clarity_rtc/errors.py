from __future__ import annotations


class ClarityRtcError(Exception):
    """Base class for errors raised by the telemetry core and its collaborators."""


class InvalidEventError(ClarityRtcError):
    """A raw session event could not be interpreted at all (not a JSON object)."""


class SessionActiveError(ClarityRtcError):
    """An action that must not run mid-session was requested while connected."""


class CaptureError(ClarityRtcError):
    """Local audio capture could not be acquired."""


class RealtimeConnectionError(ClarityRtcError):
    """The realtime connection could not be established."""


class SnapshotStoreError(ClarityRtcError):
    """A snapshot store call failed."""
