"""DoH (DNS over HTTPS) JSON resolver."""
import ipaddress
from typing import Optional
import httpx
from .bootstrap import BootstrapNetworkBackend
from .config import logger
from .errors import ResolutionError
from .models import ResolvedHost
from .transport import BackendTransport

DNS_JSON = "application/dns-json"


def create_doh_client(bootstrap_dns: Optional[str] = None, timeout: Optional[float] = 5.0) -> httpx.AsyncClient:
    """
    Build the HTTP client used for DoH lookups.

    Args:
        bootstrap_dns: If set, DoH endpoint hostnames are resolved through this
            plain DNS server instead of the system resolver
        timeout: Per-request timeout in seconds, None for no limit

    Returns:
        An httpx.AsyncClient; the caller owns and closes it
    """
    if bootstrap_dns:
        transport = BackendTransport(BootstrapNetworkBackend(bootstrap_dns))
        return httpx.AsyncClient(transport=transport, timeout=timeout)
    return httpx.AsyncClient(timeout=timeout)


def _first_ip(answers) -> Optional[str]:
    for answer in answers:
        if not isinstance(answer, dict):
            continue
        data = answer.get("data")
        if not isinstance(data, str):
            continue
        try:
            return str(ipaddress.ip_address(data))
        except ValueError:
            # CNAME targets and other non-address records
            continue
    return None


async def resolve_doh(client: httpx.AsyncClient, doh_url: str, hostname: str) -> ResolvedHost:
    """
    Resolve ``hostname`` to an IP address with a DoH JSON API query.

    Sends ``GET doh_url?name=<hostname>&type=A`` and returns the first entry of
    ``Answer`` whose ``data`` is an IP literal.

    Args:
        client: The HTTP client to use for the request
        doh_url: The DoH JSON endpoint (e.g., https://dns.google/resolve)
        hostname: Hostname to look up

    Returns:
        The hostname paired with the resolved IP

    Raises:
        ResolutionError: on transport failure, malformed JSON or no usable answer
    """
    try:
        return ResolvedHost(hostname=hostname, ip=str(ipaddress.ip_address(hostname)))
    except ValueError:
        pass

    try:
        resp = await client.get(
            doh_url,
            params={"name": hostname, "type": "A"},
            headers={"Accept": DNS_JSON},
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ResolutionError(f"DoH request to {doh_url} failed: {e}") from e

    try:
        payload = resp.json()
    except ValueError as e:
        raise ResolutionError(f"invalid JSON from {doh_url} (HTTP {resp.status_code}): {e}") from e

    if not isinstance(payload, dict):
        raise ResolutionError(f"unexpected DoH response shape from {doh_url}")
    answers = payload.get("Answer") or []
    if not isinstance(answers, list):
        raise ResolutionError(f"unexpected 'Answer' field from {doh_url}")

    ip = _first_ip(answers)
    if ip is None:
        raise ResolutionError("no valid A record found")

    logger.debug(f"[DOH] {hostname} -> {ip} via {doh_url}")
    return ResolvedHost(hostname=hostname, ip=ip)
