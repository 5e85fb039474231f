"""
Connector

Turns a prepared SSHClientConfig and a target address into a live,
authenticated paramiko.SSHClient. The stream comes from a Dialer (direct
socket or tunnel channel); the handshake is identical in both cases, so
the resulting session is proxy-agnostic.

Connection Flow:
    1. Dial the target (DialError on failure)
    2. Install the trust policy and run the handshake over the stream
    3. Close everything and raise on any handshake failure; no partially
       connected client is ever returned
"""

import logging
import socket
import time
from typing import Callable, Optional

import paramiko
from paramiko import SSHClient

from .connection_config import SSHClientConfig
from .dialers import Dialer, DirectDialer
from .exceptions import HandshakeError, HostIdentityMismatch

logger = logging.getLogger(__name__)


class Connector:
    """
    Dial and authenticate one SSH session.

    Attributes:
        dialer: Source of the underlying stream
        client_factory: Builds the paramiko client (replaceable in tests)
    """

    def __init__(
        self,
        dialer: Optional[Dialer] = None,
        client_factory: Optional[Callable[[], SSHClient]] = None,
    ) -> None:
        self.dialer = dialer or DirectDialer()
        self.client_factory = client_factory or paramiko.SSHClient

    def connect(self, config: SSHClientConfig, hostname: str, port: int) -> SSHClient:
        """
        Establish an authenticated session to hostname:port.

        Raises:
            DialError: Stream to the target could not be opened
            HostIdentityMismatch: Pinned fingerprint did not match
            HandshakeError: Negotiation or authentication failed
        """
        start_time = time.monotonic()
        sock = self.dialer.dial((hostname, port), config.timeout)

        client = self.client_factory()
        client.set_missing_host_key_policy(config.trust.policy)

        try:
            client.connect(hostname=hostname, port=port, sock=sock, **config.connect_kwargs())

        except HostIdentityMismatch:
            _abort(client, sock)
            raise

        except paramiko.AuthenticationException as e:
            _abort(client, sock)
            logger.error(
                "SSH authentication failed for %s@%s:%d using %s auth",
                config.username,
                hostname,
                port,
                config.auth.kind,
            )
            raise HandshakeError(
                f"Authentication failed for {config.username}@{hostname}",
                hostname=hostname,
                port=port,
                error_type="auth_failed",
                details=str(e),
            ) from e

        except (paramiko.SSHException, EOFError) as e:
            _abort(client, sock)
            logger.error("SSH handshake error with %s:%d: %s", hostname, port, e)
            raise HandshakeError(
                f"SSH protocol error: {e}",
                hostname=hostname,
                port=port,
                error_type="protocol_error",
                details=str(e),
            ) from e

        except socket.timeout as e:
            _abort(client, sock)
            raise HandshakeError(
                f"Handshake did not complete within {config.timeout}s",
                hostname=hostname,
                port=port,
                error_type="timeout",
            ) from e

        except OSError as e:
            _abort(client, sock)
            logger.error("Connection to %s:%d lost during handshake: %s", hostname, port, e)
            raise HandshakeError(
                f"Connection lost during handshake: {e}",
                hostname=hostname,
                port=port,
                error_type="protocol_error",
                details=str(e),
            ) from e

        duration = time.monotonic() - start_time
        logger.info(
            "SSH connection successful: %s@%s:%d (auth: %s, trust: %s, duration: %.2fs)",
            config.username,
            hostname,
            port,
            config.auth.kind,
            config.trust.mode.value,
            duration,
        )
        return client


def _abort(client: SSHClient, sock: object) -> None:
    client.close()
    close = getattr(sock, "close", None)
    if close is not None:
        try:
            close()
        except OSError as e:
            logger.debug("Error closing stream after failed handshake: %s", e)


__all__ = ["Connector"]
