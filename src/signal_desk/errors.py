"""Exception taxonomy for Signal Desk."""


class SignalDeskError(Exception):
    """Base class for all Signal Desk errors."""
    pass


class NetworkError(SignalDeskError):
    """Transport or HTTP failure talking to the market data endpoint."""
    pass


class FormatError(SignalDeskError):
    """Market data payload did not have the expected shape."""
    pass


class InsufficientDataError(SignalDeskError):
    """Fewer candles than an indicator requires."""

    def __init__(self, required: int, actual: int):
        self.required = required
        self.actual = actual
        super().__init__(f"Insufficient data: need {required} candles, got {actual}")


class InvalidStateError(SignalDeskError):
    """Trade lifecycle operation attempted in the wrong state."""
    pass
