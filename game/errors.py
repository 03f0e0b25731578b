class TrialEngineError(Exception):
    """Base class for all errors raised by the trial engine."""


class ConfigurationError(TrialEngineError):
    """Settings rejected before a session could start."""


class StaleSubmissionError(TrialEngineError):
    """An answer arrived for a trial that is no longer the active one."""

    def __init__(self, trial_index: int, active_index: int | None) -> None:
        super().__init__(f"stale submission for trial {trial_index} (active: {active_index})")
        self.trial_index = trial_index
        self.active_index = active_index


class TransportError(TrialEngineError):
    """The gateway could not be reached or answered garbage."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason


class TimerInvariantViolation(TrialEngineError):
    """Time-up fired twice for one armed period. Always a bug."""


class SessionNotFoundError(TrialEngineError):
    """The gateway knows nothing about this session id."""

    def __init__(self, session_id) -> None:
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id
