"""Redirect chain tracer that dials DoH-resolved addresses."""
from dataclasses import dataclass
from typing import Callable, List, Optional
import httpx
from .config import DEFAULT_USER_AGENT, logger
from .errors import ChainError, InputError, ResolutionError
from .models import Hop, TraceState
from .resolver import resolve_doh
from .transport import PinnedTransport, port_for_url

# (ip, port, server_name) -> transport for one hop
TransportFactory = Callable[[str, int, str], httpx.AsyncBaseTransport]


@dataclass(frozen=True)
class TraceSettings:
    """Fixed knobs of a trace."""
    max_hops: int = 10
    user_agent: str = DEFAULT_USER_AGENT
    # None re-resolves new hostnames against the caller's DoH endpoint
    redirect_doh: Optional[str] = "https://dns.google/resolve"
    timeout: Optional[float] = 5.0


def parse_target_url(raw_url: str) -> httpx.URL:
    """
    Parse the URL to trace.

    Raises:
        InputError: if it does not parse or lacks a scheme or host
    """
    try:
        url = httpx.URL(raw_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InputError("Invalid 'url' parameter") from e
    if not url.scheme or not url.host:
        raise InputError("Invalid 'url' parameter")
    return url


def hostname_of(url: httpx.URL) -> str:
    """ASCII (IDNA-encoded) hostname of ``url``, without brackets for IPv6."""
    return url.raw_host.decode("ascii")


class RedirectTracer:
    """
    Follows a redirect chain one hop at a time, dialing each hop at a pinned IP.

    Every hop gets a fresh transport and connection. When a redirect leaves the
    current hostname, the new hostname is resolved over DoH before the next
    request; otherwise the previous IP is reused.
    """

    def __init__(
        self,
        doh_client: httpx.AsyncClient,
        settings: Optional[TraceSettings] = None,
        transport_factory: TransportFactory = PinnedTransport,
    ):
        """
        Args:
            doh_client: HTTP client used for mid-chain DoH lookups
            settings: Hop cap, User-Agent, redirect resolver and timeout
            transport_factory: Builds the per-hop transport from (ip, port, server_name)
        """
        self.doh_client = doh_client
        self.settings = settings or TraceSettings()
        self.transport_factory = transport_factory

    async def trace(self, url: httpx.URL, ip: str, doh_url: Optional[str] = None) -> List[Hop]:
        """
        Trace the redirect chain starting at ``url``, first dialed at ``ip``.

        Args:
            url: Absolute starting URL
            ip: Address already resolved for ``url.host``
            doh_url: Caller's DoH endpoint, used for re-resolution when
                ``settings.redirect_doh`` is None

        Returns:
            Hops in the order they were visited; at most ``settings.max_hops``

        Raises:
            ChainError: on any transport, TLS or re-resolution failure
        """
        state = TraceState(current_url=url, host=hostname_of(url), ip=ip)
        chain: List[Hop] = []

        while state.hop_index < self.settings.max_hops:
            response = await self._request(state)

            hop = Hop(url=str(state.current_url), status=response.status_code)
            chain.append(hop)
            logger.debug(f"[HOP {state.hop_index}] {hop.url} via {state.ip} -> {hop.status}")

            if not hop.is_redirect:
                break

            location = response.headers.get("Location")
            if not location:
                logger.debug(f"{hop.status} from {hop.url} has no Location, stopping")
                break

            # httpx usually rejects a malformed Location while building the
            # response, which surfaces from _request as a RemoteProtocolError
            try:
                next_url = state.current_url.join(location)
            except httpx.InvalidURL as e:
                raise ChainError(f"invalid Location {location!r} from {hop.url}: {e}") from e

            next_host = hostname_of(next_url)
            if next_host != state.host:
                state.ip = await self._reresolve(next_host, doh_url)
                state.host = next_host

            state.current_url = next_url
            state.hop_index += 1

        return chain

    async def _request(self, state: TraceState) -> httpx.Response:
        url = state.current_url
        # An explicit port in the URL is dialed; otherwise the scheme default
        transport = self.transport_factory(state.ip, port_for_url(url), state.host)
        headers = {
            "Host": url.netloc.decode("ascii"),
            "User-Agent": self.settings.user_agent,
        }
        try:
            async with httpx.AsyncClient(
                transport=transport,
                follow_redirects=False,
                timeout=self.settings.timeout,
            ) as client:
                # Not streamed: the body is read in full and dropped with the client
                return await client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ChainError(f"request to {url} via {state.ip} failed: {type(e).__name__}: {e}") from e

    async def _reresolve(self, hostname: str, doh_url: Optional[str]) -> str:
        endpoint = self.settings.redirect_doh or doh_url
        if not endpoint:
            raise ChainError(f"failed to resolve {hostname}: no DoH endpoint configured")
        try:
            resolved = await resolve_doh(self.doh_client, endpoint, hostname)
        except ResolutionError as e:
            raise ChainError(f"failed to resolve {hostname}: {e}") from e
        return resolved.ip
