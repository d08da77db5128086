"""Check variants — TLS handshake, DNS resolution, HTTP status, HTTP body search.

Each variant is a frozen dataclass: its target and cadence are fixed at
construction. ``run()`` blocks on network I/O and always returns a
``RunOutcome``; connections and responses are released on every path.
"""

from __future__ import annotations

import ipaddress
import math
import socket
import ssl
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import dns.exception
import dns.resolver
import httpx

from netprobe.config import settings

from .base import Probe, RunOutcome

DNS_PORT = 53
DEFAULT_RESOLVER_TIMEOUT_MS = 3000


def _elapsed_ms(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000


def _require_interval(interval_seconds: float) -> None:
    if not math.isfinite(interval_seconds) or interval_seconds <= 0:
        raise ValueError(f"interval_seconds must be a positive finite number, got {interval_seconds}")


def _require_http_url(url: str) -> None:
    if not url:
        raise ValueError("HTTP probe requires a url")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid url {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValueError(f"Invalid url {url!r}: expected http(s)://host/...")


# ── TLS ──────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TlsProbe:
    """TCP connect + TLS handshake using the default trust store."""

    host: str
    port: int = 443
    interval_seconds: float = 60.0
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("TLS probe requires a host")
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")
        _require_interval(self.interval_seconds)

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"

    def run(self) -> RunOutcome:
        t0 = time.perf_counter()
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout_seconds)
        except (OSError, UnicodeError) as e:
            return RunOutcome.failure(
                "tls", f"TLS connection to {self.target} failed: {type(e).__name__}: {e}", _elapsed_ms(t0),
            )

        with sock:
            try:
                ctx = ssl.create_default_context()
                with ctx.wrap_socket(sock, server_hostname=self.host):
                    pass
            except OSError as e:
                return RunOutcome.failure(
                    "tls", f"TLS handshake failed for {self.target}: {type(e).__name__}: {e}", _elapsed_ms(t0),
                )

        return RunOutcome.success("tls", f"TLS connection established to {self.target}", _elapsed_ms(t0))

    def interval(self) -> float:
        return self.interval_seconds

    def name(self) -> str:
        return f"TLS {self.target}"


# ── DNS ──────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DnsProbe:
    """Resolve a hostname; optionally through an explicit resolver.

    The resolver is owned by this probe. Other probes keep using the system
    resolver (or their own) regardless of what this one is configured with.
    """

    host: str
    resolver: str | None = None
    interval_seconds: float = 60.0
    resolver_timeout_ms: int = DEFAULT_RESOLVER_TIMEOUT_MS

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("DNS probe requires a host")
        if self.resolver:
            try:
                ipaddress.ip_address(self.resolver)
            except ValueError as e:
                raise ValueError(
                    f"Resolver must be an IP address (hostnames are not accepted), got {self.resolver!r}"
                ) from e
        _require_interval(self.interval_seconds)

    def run(self) -> RunOutcome:
        t0 = time.perf_counter()
        try:
            if self.resolver:
                addrs = self._lookup_with_resolver()
            else:
                addrs = self._lookup_system()
        except (OSError, UnicodeError, dns.exception.DNSException) as e:
            return RunOutcome.failure(
                "dns", f"DNS lookup failed for {self.host}: {type(e).__name__}: {e}", _elapsed_ms(t0),
            )

        if not addrs:
            return RunOutcome.failure("dns", f"no IP addresses found for {self.host}", _elapsed_ms(t0))

        return RunOutcome.success("dns", f"DNS lookup successful for {self.host}: {addrs}", _elapsed_ms(t0))

    def _lookup_system(self) -> list[str]:
        infos = socket.getaddrinfo(self.host, None)
        return list(dict.fromkeys(info[4][0] for info in infos))

    def _lookup_with_resolver(self) -> list[str]:
        r = dns.resolver.Resolver(configure=False)
        r.nameservers = [self.resolver]
        r.port = DNS_PORT
        r.timeout = self.resolver_timeout_ms / 1000
        r.lifetime = self.resolver_timeout_ms / 1000

        addrs: list[str] = []
        for rdtype in ("A", "AAAA"):
            try:
                answer = r.resolve(self.host, rdtype)
            except dns.resolver.NoAnswer:
                # A name with only v4 or only v6 records is still resolvable.
                continue
            addrs.extend(str(rr) for rr in answer)
        return list(dict.fromkeys(addrs))

    def interval(self) -> float:
        return self.interval_seconds

    def name(self) -> str:
        return f"DNS {self.host}"


# ── HTTP ─────────────────────────────────────────────────────────────────────


def _http_get(url: str, timeout_seconds: float) -> httpx.Response:
    """GET ``url``; the body is fully read and the connection closed on return."""
    with httpx.Client(timeout=timeout_seconds, follow_redirects=True) as client:
        return client.get(url)


@dataclass(frozen=True)
class HttpProbe:
    """GET a URL and require status 200."""

    url: str
    interval_seconds: float = 60.0
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        _require_http_url(self.url)
        _require_interval(self.interval_seconds)

    def run(self) -> RunOutcome:
        t0 = time.perf_counter()
        try:
            resp = _http_get(self.url, self.timeout_seconds)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return RunOutcome.failure(
                "http", f"HTTP request failed for {self.url}: {type(e).__name__}: {e}", _elapsed_ms(t0),
            )

        if resp.status_code != 200:
            return RunOutcome.failure(
                "http",
                f"HTTP request to {self.url} returned status code {resp.status_code} ({resp.reason_phrase})",
                _elapsed_ms(t0),
            )

        return RunOutcome.success("http", f"HTTP request successful for {self.url}", _elapsed_ms(t0))

    def interval(self) -> float:
        return self.interval_seconds

    def name(self) -> str:
        return f"HTTP {self.url}"


@dataclass(frozen=True)
class HttpSearchProbe:
    """GET a URL, require status 200 and an exact substring in the body."""

    url: str
    search: str
    interval_seconds: float = 60.0
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        _require_http_url(self.url)
        if not self.search:
            raise ValueError("HTTP search probe requires a non-empty search term")
        _require_interval(self.interval_seconds)

    def run(self) -> RunOutcome:
        t0 = time.perf_counter()
        try:
            resp = _http_get(self.url, self.timeout_seconds)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return RunOutcome.failure(
                "http_search", f"HTTP request failed for {self.url}: {type(e).__name__}: {e}", _elapsed_ms(t0),
            )

        # Status is checked before the body: a 500 page containing the term still fails.
        if resp.status_code != 200:
            return RunOutcome.failure(
                "http_search",
                f"HTTP request to {self.url} returned status code {resp.status_code}",
                _elapsed_ms(t0),
            )

        if self.search not in resp.text:
            return RunOutcome.failure(
                "http_search",
                f"search term '{self.search}' not found in response body for {self.url}",
                _elapsed_ms(t0),
            )

        return RunOutcome.success(
            "http_search",
            f"HTTP request successful for {self.url} with search term '{self.search}' found",
            _elapsed_ms(t0),
        )

    def interval(self) -> float:
        return self.interval_seconds

    def name(self) -> str:
        return f"HTTP {self.url} + Search for '{self.search}'"


# Dispatcher
PROBE_BUILDERS: dict[str, Callable[[Any], Probe]] = {
    "tls": lambda d: TlsProbe(
        host=d.host, port=d.port, interval_seconds=d.interval_seconds, timeout_seconds=d.timeout_seconds,
    ),
    "dns": lambda d: DnsProbe(
        host=d.host, resolver=d.resolver or None, interval_seconds=d.interval_seconds,
        resolver_timeout_ms=settings.dns_resolver_timeout_ms,
    ),
    "http": lambda d: HttpProbe(
        url=d.url, interval_seconds=d.interval_seconds, timeout_seconds=d.timeout_seconds,
    ),
    "http_search": lambda d: HttpSearchProbe(
        url=d.url, search=d.search, interval_seconds=d.interval_seconds, timeout_seconds=d.timeout_seconds,
    ),
}


def build_probe(probe_def: Any) -> Probe:
    """Construct the probe variant named by ``probe_def.type``.

    Raises ``ValueError`` for unknown types or invalid targets.
    """
    builder = PROBE_BUILDERS.get(probe_def.type)
    if builder is None:
        raise ValueError(f"Unknown probe type: {probe_def.type}")
    return builder(probe_def)
