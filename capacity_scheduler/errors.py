# capacity_scheduler/errors.py


class SchedulerError(Exception):
    """Base class for errors raised by the allocation engine."""


class MalformedSlotError(SchedulerError, ValueError):
    """A daily-structure block has an unparseable or inverted time range."""

    def __init__(self, message: str, weekday: str = "", ordinal=None):
        super().__init__(message)
        self.weekday = weekday
        self.ordinal = ordinal


class SettingsError(SchedulerError, ValueError):
    pass


class InvariantViolation(SchedulerError, AssertionError):
    def __init__(self, violations):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))
