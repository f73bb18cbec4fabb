"""
Error types for the ISS track pipeline.

Every failure is fatal to the single time sample being computed; callers
decide whether to skip the sample or abort the run.
"""


class TrackError(Exception):
    """Base class for all pipeline failures."""


class LookupNotFound(TrackError, LookupError):
    """No EOP, leap-second or TLE record applies to the requested date."""


class SourceUnavailable(TrackError):
    """A backing data source (file or URL) could not be read."""


class MalformedRecord(TrackError, ValueError):
    """A record was found but a field could not be parsed."""

    def __init__(self, message: str, line_no: int = None, field: str = None):
        super().__init__(message)
        self.line_no = line_no
        self.field = field


class DomainError(TrackError, ValueError):
    """Numeric input outside the domain of a formula (NaN, inf, origin)."""


class PropagationError(TrackError):
    """SGP4 returned a non-zero error code."""

    def __init__(self, message: str, code: int = 0):
        super().__init__(message)
        self.code = code
