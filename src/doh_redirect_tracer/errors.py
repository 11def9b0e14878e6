"""Error taxonomy for redirect tracing."""


class TracerError(Exception):
    """Base class for all errors raised while serving a trace."""


class InputError(TracerError):
    """The caller supplied missing or malformed parameters."""


class ResolutionError(TracerError):
    """A DoH lookup failed: transport error, malformed JSON, or no usable answer."""


class ChainError(TracerError):
    """
    Following the redirect chain failed.

    Raised for transport and TLS failures, unparsable Location headers and
    failed re-resolution of a new hostname mid-chain. Partial chains are discarded.
    """
