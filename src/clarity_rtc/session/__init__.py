from clarity_rtc.session.lifecycle import ConnectionStatus, SessionLifecycleController

__all__ = ["ConnectionStatus", "SessionLifecycleController"]
