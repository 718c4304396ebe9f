"""
GridSurplus: error types raised by the ENTSO-E client and the series engine.

Every failure is an ``EntsoeError`` subclass carrying a single diagnostic
message (the raw upstream reason, the offending resolution string, ...).
Nothing in ``forecast`` recovers from these; callers map them to an HTTP
status or a CLI exit code.
"""


class EntsoeError(Exception): ...


class RequestError(EntsoeError):
    """Transport failure or a non-2xx response without an error payload."""


class XmlParsingError(EntsoeError):
    """The response body is not a well-formed GL_MarketDocument."""


class InvalidResponse(EntsoeError):
    """Upstream error payload, or an empty result where a value was required."""


class InvalidResolution(EntsoeError):
    """Period resolution is not of the form ``PT<N>M``."""


class InvalidTimestamp(EntsoeError):
    """Period start is not a parseable UTC timestamp."""
