"""Error taxonomy for snapshot runs.

Run-level failures (``Unauthorized``, ``SharedInputUnavailable``,
``PersistenceFailure``) end the run. ``DeviceSkipped`` is per-device and only
ever increments the skipped counter.
"""


class EngineError(Exception):
    """Base class for snapshot engine errors."""


class Unauthorized(EngineError):
    """Trigger credential rejected; no work was done."""


class PriceUnavailable(EngineError):
    """Neither a live reference price nor a usable stored fallback exists."""


class PayoutFeedError(EngineError):
    """The payout-rate provider could not be read."""


class SharedInputUnavailable(EngineError):
    """A run-wide input is missing, so the whole run is aborted."""

    def __init__(self, input_name: str, cause: Exception | None = None):
        self.input_name = input_name
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{input_name} unavailable{detail}")


class PersistenceFailure(EngineError):
    """The final snapshot batch could not be written."""


class DeviceSkipped(EngineError):
    """A single device cannot be computed this run."""

    NO_PAYOUT_RATE = "no_payout_rate"
    UNPARSABLE_SPEED = "unparsable_speed"
    DEVICE_ERROR = "device_error"

    def __init__(self, device_id: str, reason: str, detail: str = ""):
        self.device_id = device_id
        self.reason = reason
        self.detail = detail
        message = f"device {device_id} skipped: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
