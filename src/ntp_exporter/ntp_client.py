"""
NTP Exporter NTP Client

Single-server NTP query: returns the local clock offset and the server stratum.
The protocol exchange itself is delegated to ntplib.
"""

import logging
from typing import NamedTuple, Optional, Tuple

import ntplib

from .debug_logger import debug_log_call

logger = logging.getLogger(__name__)

DEFAULT_NTP_PORT = 123
DEFAULT_QUERY_TIMEOUT = 5.0


class NTPSample(NamedTuple):
    """One NTP query result"""
    offset: float   # Clock offset (seconds), positive when the local clock is behind
    stratum: float  # Server stratum


class NTPQueryFailed(RuntimeError):
    """An NTP query could not produce a sample (network, DNS, timeout or protocol error)."""

    def __init__(self, server: str, cause: str):
        self.server = server
        self.cause = cause
        super().__init__(f"couldn't get NTP drift from {server}: {cause}")


def split_server_address(server: str) -> Tuple[str, int]:
    """
    Split "hostname" or "hostname:port" into (host, port).

    Bracketed IPv6 literals ("[::1]:123") are accepted; a bare IPv6 address
    is taken as a host without port.
    """
    if server.startswith('['):
        host, _, rest = server[1:].partition(']')
        if rest.startswith(':'):
            return host, int(rest[1:])
        if rest:
            raise ValueError(f"unexpected text after IPv6 address: {rest!r}")
        return host, DEFAULT_NTP_PORT

    if server.count(':') == 1:
        host, port_str = server.rsplit(':', 1)
        return host, int(port_str)

    return server, DEFAULT_NTP_PORT


class NTPClient:
    """
    NTP client for clock offset measurements against one server at a time.

    Every query carries an explicit timeout so a slow server cannot stall a
    resampling window indefinitely.
    """

    def __init__(self, timeout: float = DEFAULT_QUERY_TIMEOUT, client: Optional[ntplib.NTPClient] = None):
        self.timeout = timeout
        self._client = client or ntplib.NTPClient()

    @debug_log_call
    def query(self, server: str, version: int) -> NTPSample:
        """
        Query `server` once with the given NTP protocol version.

        Returns: NTPSample(offset, stratum)
        Raises: NTPQueryFailed on any failure
        """
        try:
            host, port = split_server_address(server)
        except ValueError as e:
            raise NTPQueryFailed(server, f"invalid server address: {e}") from e

        try:
            response = self._client.request(host, version=version, port=port, timeout=self.timeout)
        except ntplib.NTPException as e:
            raise NTPQueryFailed(server, str(e)) from e
        except OSError as e:
            # DNS failures, refused/unreachable sockets, timeouts
            raise NTPQueryFailed(server, f"{type(e).__name__}: {e}") from e
        except (ValueError, OverflowError) as e:
            # Hostnames failing IDNA encoding, timeouts out of range for the platform
            raise NTPQueryFailed(server, f"{type(e).__name__}: {e}") from e

        sample = NTPSample(offset=float(response.offset), stratum=float(response.stratum))
        logger.debug(f"NTP sample from {server}: offset={sample.offset*1000:.3f}ms, "
                     f"stratum={sample.stratum:.0f}, delay={response.delay*1000:.1f}ms")
        return sample
