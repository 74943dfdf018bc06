# raffle_health/errors.py


class RaffleHealthError(ValueError):
    """Base class for errors raised by the forecasting/health engine."""


class InvalidInputError(RaffleHealthError):
    """Caller supplied values the engine refuses to work with (never clamped)."""


class SnapshotRangeError(InvalidInputError):
    """Snapshot day index falls outside 1..period length."""

    def __init__(self, day: int, period: int):
        self.day = day
        self.period = period
        super().__init__(f"dayNumber {day} out of range 1..{period}")


class ConfigError(RaffleHealthError):
    """Configuration document is missing a required section or value."""
