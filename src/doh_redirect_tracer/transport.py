"""IP-pinned HTTP transport.

Connections are dialed to an address chosen by the caller instead of one found
through the system resolver, while the URL keeps the original hostname. TLS is
negotiated with that hostname as SNI and verified against it, so pinning the IP
never weakens certificate checks.
"""
from contextlib import contextmanager
from typing import Optional

import httpcore
import httpx
from .config import logger


def port_for_scheme(scheme: str) -> int:
    """Return 443 for https and 80 for anything else."""
    return 443 if scheme == 'https' else 80


def port_for_url(url: httpx.URL) -> int:
    """Return the explicit port of ``url`` or the default port of its scheme."""
    if url.port is not None:
        return url.port
    return port_for_scheme(url.scheme)


class SNIPreservingStream(httpcore.AsyncNetworkStream):
    """
    Wrapper around AsyncNetworkStream that pins the TLS server name.

    start_tls always uses the hostname given at construction, whatever the
    connection pool passes in, so the handshake presents as that host even
    though the socket was opened to a bare IP.
    """

    def __init__(self, stream: httpcore.AsyncNetworkStream, server_name: str):
        self._stream = stream
        self._server_name = server_name

    async def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        return await self._stream.read(max_bytes, timeout)

    async def write(self, buffer: bytes, timeout: Optional[float] = None) -> None:
        return await self._stream.write(buffer, timeout)

    async def aclose(self) -> None:
        return await self._stream.aclose()

    async def start_tls(
        self,
        ssl_context,
        server_hostname: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        new_stream = await self._stream.start_tls(
            ssl_context, server_hostname=self._server_name, timeout=timeout
        )
        return SNIPreservingStream(new_stream, self._server_name)

    def get_extra_info(self, info: str):
        return self._stream.get_extra_info(info)


class PinnedNetworkBackend(httpcore.AsyncNetworkBackend):
    """
    Network backend that dials a fixed ``(ip, port)`` for every TCP connection.

    The host and port requested by the connection pool are ignored; they only
    describe the logical origin. The returned stream keeps ``server_name`` for SNI.
    """

    def __init__(self, ip: str, port: int, server_name: str):
        """
        Args:
            ip: Address to dial, already resolved
            port: Port to dial
            server_name: Hostname to present during the TLS handshake
        """
        self.ip = ip
        self.port = port
        self.server_name = server_name
        self._default_backend = httpcore.AnyIOBackend()

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        local_address: Optional[str] = None,
        socket_options=None,
    ):
        logger.debug(f"Dialing {self.ip}:{self.port} for {host}:{port}")
        stream = await self._default_backend.connect_tcp(
            host=self.ip,
            port=self.port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )
        return SNIPreservingStream(stream, self.server_name)

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


# Most specific first: several of these subclass NetworkError or ProtocolError
_HTTPCORE_EXCEPTIONS = (
    (httpcore.ConnectTimeout, httpx.ConnectTimeout),
    (httpcore.ReadTimeout, httpx.ReadTimeout),
    (httpcore.WriteTimeout, httpx.WriteTimeout),
    (httpcore.PoolTimeout, httpx.PoolTimeout),
    (httpcore.ConnectError, httpx.ConnectError),
    (httpcore.ReadError, httpx.ReadError),
    (httpcore.WriteError, httpx.WriteError),
    (httpcore.NetworkError, httpx.NetworkError),
    (httpcore.LocalProtocolError, httpx.LocalProtocolError),
    (httpcore.RemoteProtocolError, httpx.RemoteProtocolError),
    (httpcore.UnsupportedProtocol, httpx.UnsupportedProtocol),
    (httpcore.ProtocolError, httpx.ProtocolError),
)


@contextmanager
def map_httpcore_exceptions(request: httpx.Request):
    """Re-raise httpcore exceptions as their httpx equivalents."""
    try:
        yield
    except Exception as exc:
        for core_exc, httpx_exc in _HTTPCORE_EXCEPTIONS:
            if isinstance(exc, core_exc):
                raise httpx_exc(str(exc), request=request) from exc
        raise


class _PoolResponseStream(httpx.AsyncByteStream):
    """Response body stream that releases the pooled connection on close."""

    def __init__(self, raw_stream, response: httpcore.Response, request: httpx.Request):
        self._raw_stream = raw_stream
        self._response = response
        self._request = request

    async def __aiter__(self):
        with map_httpcore_exceptions(self._request):
            async for chunk in self._raw_stream:
                yield chunk

    async def aclose(self):
        await self._response.aclose()


class BackendTransport(httpx.AsyncHTTPTransport):
    """
    HTTP transport running an httpcore connection pool on a custom network backend.

    Certificate verification is on by default; ``verify`` only exists so tests can
    hand in their own SSLContext.
    """

    def __init__(
        self,
        network_backend: httpcore.AsyncNetworkBackend,
        verify=True,
        trust_env: bool = True,
        http1: bool = True,
        http2: bool = False,
        limits: httpx.Limits = None,
        retries: int = 0,
    ):
        if limits is None:
            limits = httpx.Limits()

        ssl_context = httpx.create_ssl_context(verify=verify, trust_env=trust_env)

        self.network_backend = network_backend
        self._pool = httpcore.AsyncConnectionPool(
            ssl_context=ssl_context,
            max_connections=limits.max_connections,
            max_keepalive_connections=limits.max_keepalive_connections,
            keepalive_expiry=limits.keepalive_expiry,
            http1=http1,
            http2=http2,
            retries=retries,
            network_backend=network_backend,
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        assert isinstance(request.stream, httpx.AsyncByteStream)

        req = httpcore.Request(
            method=request.method,
            url=httpcore.URL(
                scheme=request.url.raw_scheme,
                host=request.url.raw_host,
                port=request.url.port,
                target=request.url.raw_path,
            ),
            headers=request.headers.raw,
            content=request.stream,
            extensions=request.extensions,
        )

        with map_httpcore_exceptions(request):
            resp = await self._pool.handle_async_request(req)

        return httpx.Response(
            status_code=resp.status,
            headers=resp.headers,
            stream=_PoolResponseStream(resp.stream, resp, request),
            extensions=resp.extensions,
            request=request,
        )

    async def aclose(self) -> None:
        await self._pool.aclose()


class PinnedTransport(BackendTransport):
    """
    Single-connection transport that dials ``(ip, port)`` and presents as ``server_name``.

    Example:
        transport = PinnedTransport("93.184.216.34", 443, "example.com")
        async with httpx.AsyncClient(transport=transport) as client:
            resp = await client.get("https://example.com/")
    """

    def __init__(self, ip: str, port: int, server_name: str, **kwargs):
        kwargs.setdefault('limits', httpx.Limits(max_connections=1, max_keepalive_connections=0))
        super().__init__(PinnedNetworkBackend(ip, port, server_name), **kwargs)
