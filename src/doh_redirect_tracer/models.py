"""Data types shared by the resolver and the tracer."""
from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class ResolvedHost:
    """A hostname and the IP address DoH returned for it."""
    hostname: str
    ip: str


@dataclass(frozen=True)
class Hop:
    """One request/response exchange in a redirect chain."""
    url: str
    status: int

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400

    def to_dict(self) -> dict:
        return {'url': self.url, 'status': self.status}


@dataclass
class TraceState:
    """Loop state for a single trace; discarded when the trace ends."""
    current_url: httpx.URL
    host: str
    ip: str
    hop_index: int = 0
