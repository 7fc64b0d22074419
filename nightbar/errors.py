# nightbar/errors.py


class SimulationError(Exception):
    """Base class for engine-level failures."""


class InvalidTransition(SimulationError):
    """A service operation was requested from the wrong state."""


class NoCreditAvailable(SimulationError):
    def __init__(self, shortfall: float, headroom: float, reason: str):
        self.shortfall = shortfall
        self.headroom = headroom
        self.reason = reason
        super().__init__(
            f"Shortfall of ${shortfall:.2f} for {reason!r} exceeds credit headroom of ${headroom:.2f}"
        )


class SaveError(Exception):
    """Base class for recoverable save/load failures."""


class NoSaveFound(SaveError):
    pass


class SaveIncompatible(SaveError):
    def __init__(self, found, expected: int):
        self.found = found
        self.expected = expected
        super().__init__(f"Save version {found!r} does not match expected version {expected}")


class SaveCorrupt(SaveError):
    pass


class IOFailure(SaveError):
    pass
