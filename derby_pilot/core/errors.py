class DerbyPilotError(Exception):
    """Base class for all derby_pilot errors."""


class MalformedObservation(DerbyPilotError):
    """A sensor observation is missing fields required to make a decision."""


class PerceptionUnavailable(DerbyPilotError):
    """The object detection service could not be reached or gave no usable answer."""


class CommandFinalizedError(DerbyPilotError):
    """A drive command was modified after it was handed off for dispatch."""
