"""
Dialers

A dialer produces the byte stream an SSH handshake runs over:

- DirectDialer: a TCP socket to host:port
- TunnelDialer: a direct-tcpip channel opened inside an already
  authenticated session of a proxy (jump host). The target's handshake
  then runs inside the proxy's encrypted session.

The proxy is only needed as a ChannelOpener: anything that can open an
authenticated channel to an address. A downstream client never owns or
closes its proxy.
"""

import errno
import logging
import socket
from typing import Any, Optional, Protocol, Tuple, runtime_checkable

from .exceptions import DialError

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


@runtime_checkable
class ChannelOpener(Protocol):
    """Capability to open a channel to an address through a live session."""

    def open_channel(self, address: Address, timeout: Optional[float] = None) -> Any:
        ...


class Dialer(Protocol):
    def dial(self, address: Address, timeout: float) -> Any:
        ...


class DirectDialer:
    """Dial the target over the network."""

    def dial(self, address: Address, timeout: float) -> socket.socket:
        hostname, port = address
        try:
            return socket.create_connection(address, timeout=timeout)
        except socket.timeout as e:
            logger.warning("SSH connection timeout to %s:%d after %ss", hostname, port, timeout)
            raise DialError(
                f"Connection timeout after {timeout}s",
                hostname=hostname,
                port=port,
                error_type="timeout",
            ) from e
        except socket.gaierror as e:
            logger.error("Unable to resolve %s: %s", hostname, e)
            raise DialError(
                "Unable to resolve host name",
                hostname=hostname,
                port=port,
                error_type="unresolved",
                details=str(e),
            ) from e
        except OSError as e:
            raise _socket_error(e, hostname, port) from e


class TunnelDialer:
    """
    Dial the target through a proxy's session.

    Args:
        proxy: ChannelOpener (usually another sshchain Client)
    """

    def __init__(self, proxy: ChannelOpener) -> None:
        self.proxy = proxy

    def dial(self, address: Address, timeout: float) -> Any:
        hostname, port = address
        logger.debug("Opening tunnel channel to %s:%d through proxy", hostname, port)
        try:
            return self.proxy.open_channel(address, timeout=timeout)
        except DialError:
            raise
        except Exception as e:
            logger.error("Tunnel channel to %s:%d failed: %s", hostname, port, e)
            raise DialError(
                "Proxy failed to open a channel to the target",
                hostname=hostname,
                port=port,
                error_type="channel",
                details=str(e),
            ) from e


def select_dialer(proxy: Optional[ChannelOpener] = None) -> Dialer:
    """Pick the dialer once per construction."""
    if proxy is not None:
        return TunnelDialer(proxy)
    return DirectDialer()


def _socket_error(exception: OSError, hostname: str, port: int) -> DialError:
    logger.error("Socket error connecting to %s:%d: %s", hostname, port, exception)

    if exception.errno == errno.ECONNREFUSED:
        message, error_type = "Connection refused (SSH service may not be running)", "refused"
    elif exception.errno in (errno.EHOSTUNREACH, errno.ENETUNREACH):
        message, error_type = "No route to host (network unreachable)", "unreachable"
    elif exception.errno == errno.ETIMEDOUT:
        message, error_type = "Connection timed out", "timeout"
    else:
        message, error_type = f"Network error: {exception}", "network"

    return DialError(message, hostname=hostname, port=port, error_type=error_type, details=str(exception))


__all__ = [
    "Address",
    "ChannelOpener",
    "Dialer",
    "DirectDialer",
    "TunnelDialer",
    "select_dialer",
]
