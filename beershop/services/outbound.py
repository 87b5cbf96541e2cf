"""
Outbound HTTP with SSRF protection.

Every URL is parsed, its scheme checked and its host resolved before any
connection is attempted; if any resolved address falls in a non-public
range the request is refused. The connection then goes to a checked
address, so a second lookup cannot swap in another one. Redirects are
never followed: a 3xx answer is handed back to the caller as data.
"""

import asyncio
import ipaddress
import logging
import socket
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from beershop.core.errors import (
    InvalidUrl,
    SchemeNotAllowed,
    SsrfBlocked,
    UpstreamResponseTooLarge,
    UpstreamTimeout,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(n)
    for n in (
        "0.0.0.0/8",
        "10.0.0.0/8",
        "100.64.0.0/10",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.0.0.0/24",
        "192.168.0.0/16",
        "198.18.0.0/15",
        "224.0.0.0/4",
        "240.0.0.0/4",
        "::/128",
        "::1/128",
        "64:ff9b::/96",
        "fc00::/7",
        "fe80::/10",
        "ff00::/8",
    )
)

# host, port -> list of address strings. Raises InvalidUrl when the name does not resolve.
Resolver = Callable[[str, int], Awaitable[list[str]]]


@dataclass(frozen=True)
class OutboundTarget:
    url: str
    scheme: str
    host: str
    port: int
    addresses: tuple[str, ...]


@dataclass(frozen=True)
class OutboundResult:
    status_code: int
    location: str | None
    body: bytes


def is_blocked_address(address: str) -> bool:
    """True for any address that is not plainly public; unparsable input counts as blocked."""
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return True
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    if (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    ):
        return True
    return any(ip.version == net.version and ip in net for net in BLOCKED_NETWORKS)


async def system_resolver(host: str, port: int) -> list[str]:
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise InvalidUrl("Host could not be resolved") from e
    return sorted({info[4][0] for info in infos})


def _bracketed(host: str) -> str:
    return f"[{host}]" if ":" in host else host


def pinned_request(target: OutboundTarget) -> tuple[httpx.URL, dict[str, str], dict[str, str]]:
    """
    URL, headers and extensions that send a request to target's first checked
    address while presenting the original host name to the server.
    """
    try:
        url = httpx.URL(target.url).copy_with(host=_bracketed(target.addresses[0]))
    except httpx.InvalidURL as e:
        raise InvalidUrl() from e
    host = _bracketed(target.host)
    if target.port != DEFAULT_PORTS[target.scheme]:
        host = f"{host}:{target.port}"
    extensions = {"sni_hostname": target.host} if target.scheme == "https" else {}
    return url, {"Host": host}, extensions


class OutboundGuard:
    """Resolves, checks and fetches outbound URLs under a hard timeout and size cap."""

    def __init__(
        self,
        timeout: float,
        max_bytes: int,
        resolver: Resolver = system_resolver,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._resolver = resolver
        self._transport = transport

    async def resolve(self, url: str | None) -> OutboundTarget:
        """Check url and every address its host resolves to. No request is made."""
        if not url:
            raise InvalidUrl()
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as e:
            raise InvalidUrl() from e
        scheme = parts.scheme.lower()
        host = (parts.hostname or "").lower()
        if not scheme:
            raise InvalidUrl()
        if scheme not in ALLOWED_SCHEMES:
            logger.warning("Outbound scheme refused", extra={"scheme": scheme})
            raise SchemeNotAllowed()
        if not host:
            raise InvalidUrl()
        port = port or DEFAULT_PORTS[scheme]

        addresses = await self._resolver(host, port)
        if not addresses:
            raise InvalidUrl("Host could not be resolved")
        blocked = [a for a in addresses if is_blocked_address(a)]
        if blocked:
            logger.warning(
                "Outbound request blocked",
                extra={"host": host, "blocked_addresses": blocked},
            )
            raise SsrfBlocked()
        return OutboundTarget(
            url=url, scheme=scheme, host=host, port=port, addresses=tuple(addresses)
        )

    async def fetch(
        self,
        url: str | None,
        params: dict[str, str] | None = None,
        max_bytes: int | None = None,
    ) -> OutboundResult:
        """
        GET url after resolve() has cleared it.

        The connection goes to the first checked address, never to a fresh
        lookup of the name; the original host travels in the Host header and
        as the TLS server name.

        Raises UpstreamTimeout when the whole exchange exceeds the timeout,
        UpstreamResponseTooLarge when the body passes the cap and
        UpstreamUnavailable on connection or protocol failures.
        """
        target = await self.resolve(url)
        request_url, headers, extensions = pinned_request(target)
        limit = max_bytes or self.max_bytes
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._get(request_url, params, headers, extensions, limit), self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.info(
                "Outbound request timed out",
                extra={"host": target.host, "latency_seconds": time.perf_counter() - start},
            )
            raise UpstreamTimeout() from e
        except httpx.HTTPError as e:
            logger.info(
                "Outbound request failed",
                extra={"host": target.host, "error": type(e).__name__},
            )
            raise UpstreamUnavailable() from e
        logger.info(
            "Outbound request completed",
            extra={
                "host": target.host,
                "address": request_url.host,
                "status": result.status_code,
                "latency_seconds": time.perf_counter() - start,
            },
        )
        return result

    async def _get(
        self,
        url: httpx.URL,
        params: dict[str, str] | None,
        headers: dict[str, str],
        extensions: dict[str, str],
        limit: int,
    ) -> OutboundResult:
        async with httpx.AsyncClient(
            follow_redirects=False,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        ) as client:
            async with client.stream(
                "GET", url, params=params, headers=headers, extensions=extensions
            ) as response:
                declared = response.headers.get("Content-Length")
                if declared is not None and declared.isdigit() and int(declared) > limit:
                    raise UpstreamResponseTooLarge()
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > limit:
                        raise UpstreamResponseTooLarge()
                location = response.headers.get("Location") if response.is_redirect else None
                return OutboundResult(
                    status_code=response.status_code, location=location, body=bytes(body)
                )
