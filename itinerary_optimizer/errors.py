"""Exceptions raised by the optimization pipeline."""


class OptimizationError(Exception):
    """Base class for failures reported to the caller as ``success: false``."""


class MalformedInputError(OptimizationError):
    """A place record or trip field is missing or invalid."""


class UnrecoverableTripError(OptimizationError):
    """Nothing can be scheduled: no places and no derivable anchors."""


class AirportLookupError(Exception):
    """The remote airport dataset could not be fetched or parsed.

    Recovered inside the airport directory; never reaches the caller.
    """
