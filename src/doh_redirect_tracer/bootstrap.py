"""Bootstrap DNS resolution for DoH endpoints."""
import asyncio
import ipaddress
import socket
from typing import Optional
from dnslib import DNSRecord, QTYPE
from dnslib.dns import DNSError
import httpcore
from .config import logger
from .transport import SNIPreservingStream


def resolve_hostname_to_ip(hostname: str, bootstrap_dns: str) -> Optional[str]:
    """
    Resolves a hostname to an IPv4 address with a plain UDP query to ``bootstrap_dns``.

    Used only for the DoH endpoint's own hostname, so reaching the resolver does
    not depend on the system resolver either.

    Args:
        hostname: The hostname to resolve (e.g., 'dns.google')
        bootstrap_dns: The DNS server to query on port 53

    Returns:
        The resolved IP address as a string, or None if resolution failed
    """
    # Check if it's already an IP
    try:
        return str(ipaddress.ip_address(hostname))
    except ValueError:
        pass

    logger.debug(f"Resolving '{hostname}' via {bootstrap_dns}...")

    q = DNSRecord.question(hostname, "A")
    data = q.pack()

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(5.0)
            sock.sendto(data, (bootstrap_dns, 53))
            response_data, _ = sock.recvfrom(512)

            response = DNSRecord.parse(response_data)
            for rr in response.rr:
                if rr.rtype == QTYPE.A:
                    ip = str(rr.rdata)
                    logger.debug(f"Resolved {hostname} -> {ip}")
                    return ip

            logger.warning(f"Could not resolve {hostname} via bootstrap.")
            return None

    except (OSError, DNSError) as e:
        logger.error(f"Bootstrap resolution failed for {hostname}: {e}")
        return None


class BootstrapNetworkBackend(httpcore.AsyncNetworkBackend):
    """
    Network backend that resolves every connect host through a bootstrap DNS server.

    The original hostname is kept for SNI. Nothing is cached: each connection
    triggers a fresh lookup.
    """

    def __init__(self, bootstrap_dns: str):
        self.bootstrap_dns = bootstrap_dns
        self._default_backend = httpcore.AnyIOBackend()

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        local_address: Optional[str] = None,
        socket_options=None,
    ):
        resolved_ip = await asyncio.to_thread(resolve_hostname_to_ip, host, self.bootstrap_dns)
        if resolved_ip is None:
            raise httpcore.ConnectError(f"bootstrap DNS {self.bootstrap_dns} could not resolve {host}")

        stream = await self._default_backend.connect_tcp(
            host=resolved_ip,
            port=port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )
        return SNIPreservingStream(stream, host)

    async def connect_unix_socket(
        self,
        path: str,
        timeout: Optional[float] = None,
        socket_options=None,
    ):
        return await self._default_backend.connect_unix_socket(
            path=path,
            timeout=timeout,
            socket_options=socket_options,
        )

    async def sleep(self, seconds: float):
        return await self._default_backend.sleep(seconds)
