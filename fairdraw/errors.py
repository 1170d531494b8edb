"""Exception and warning types raised by the giveaway draw subsystem."""

from __future__ import annotations


class FairdrawError(Exception):
    """Base class for every error raised by :mod:`fairdraw`."""


class ConfigError(FairdrawError):
    """Missing or invalid configuration. Fatal at startup and never retried."""


class EntropyError(FairdrawError):
    """Base class for failures while acquiring a client seed."""


class NetworkError(EntropyError):
    """The entropy provider could not be reached or answered with an HTTP error."""


class ProtocolError(EntropyError):
    """The entropy provider answered with a malformed or non-hex payload."""


class EntropyTimeoutError(EntropyError, TimeoutError):
    """The observed chain did not reach the target height within the poll budget."""


class DrawError(FairdrawError):
    """Winner computation failed; nothing was committed."""


class GiveawayNotFoundError(FairdrawError, LookupError):
    """No giveaway exists under the requested id."""


class GiveawayStateError(FairdrawError):
    """The requested operation is not allowed in the giveaway's current state."""


class GiveawayClosedError(GiveawayStateError):
    """Entries are frozen: the close time has passed or the giveaway left ``open``."""


class AlreadyEnteredError(FairdrawError):
    """The participant already holds an entry in this giveaway."""


class AlreadyDrawnError(GiveawayStateError):
    """The giveaway has already been drawn; the draw is never repeated."""


class EmptyEntrantsWarning(UserWarning):
    """A draw ran without any entries and therefore produced no winners."""


__all__ = [
    "AlreadyDrawnError",
    "AlreadyEnteredError",
    "ConfigError",
    "DrawError",
    "EmptyEntrantsWarning",
    "EntropyError",
    "EntropyTimeoutError",
    "FairdrawError",
    "GiveawayClosedError",
    "GiveawayNotFoundError",
    "GiveawayStateError",
    "NetworkError",
    "ProtocolError",
]
