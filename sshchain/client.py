"""
SSH Client

The long-lived handle produced by new_client(): an authenticated SSH
session, an optional SFTP sub-session layered on it, and a non-owning
reference to the proxy it was tunneled through.

Lifecycle:
    1. new_client() applies defaults, resolves credentials and trust,
       dials (directly or through the proxy) and authenticates
    2. Unless disabled, an SFTP sub-session is opened on the new session
    3. run() executes commands; each call gets its own channel, so
       concurrent calls from several threads are fine
    4. close() tears down SFTP first, then SSH

Callers must not close a client while commands are still running on it,
and must close a proxy only after every client tunneled through it.

Usage:
    from sshchain import ConnectionSpec, Command, new_client

    bastion = new_client(ConnectionSpec(host="bastion.example.com", key_file="~/.ssh/id_ed25519"))
    with new_client(ConnectionSpec(host="10.0.0.5", password="..."), proxy=bastion) as client:
        client.run(Command("uptime", stdout=sys.stdout.buffer))
    bastion.close()
"""

import logging
import threading
import time
from typing import IO, Any, Callable, Optional

import paramiko
from paramiko import SFTPClient, SSHClient
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import get_settings
from .connection_config import build_client_config
from .connector import Connector
from .diagnostics import DiagnosticSink, default_sink
from .dialers import Address, ChannelOpener, select_dialer
from .exceptions import DialError, ExecutionError, SubsessionUnsupported, TeardownError
from .models import Command, CommandResult, ConnectionSpec

logger = logging.getLogger(__name__)

# Failures of the session itself, as opposed to the remote command
SESSION_ERRORS = (paramiko.SSHException, EOFError, OSError)


class ClientOptions(BaseModel):
    """
    Construction options for new_client().

    Attributes:
        timeout: Dial and handshake timeout in seconds
        proxy: Live session to tunnel through (anything with open_channel)
        sftp_disabled: Skip the SFTP sub-session
        diagnostics: Sink for security warnings (defaults to logging)
        client_factory: Builds the paramiko client
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    timeout: float = Field(default_factory=lambda: get_settings().connect_timeout)
    proxy: Optional[Any] = None
    sftp_disabled: bool = Field(default_factory=lambda: get_settings().sftp_disabled)
    diagnostics: Optional[Any] = None
    client_factory: Optional[Callable[[], SSHClient]] = None

    @field_validator("timeout")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be greater than zero")
        return v

    @field_validator("proxy")
    @classmethod
    def proxy_must_open_channels(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, ChannelOpener):
            raise ValueError("proxy must provide open_channel(address, timeout)")
        return v

    @field_validator("diagnostics")
    @classmethod
    def diagnostics_must_accept_warnings(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, DiagnosticSink):
            raise ValueError("diagnostics must provide warning(message)")
        return v


class Client:
    """
    Connected SSH client with an optional SFTP sub-session.

    Attributes:
        spec: Effective connection spec (defaults applied)
        ssh: Authenticated paramiko SSHClient (owned)
        sftp: SFTPClient layered on ssh, or None (owned)
        proxy: ChannelOpener this client was tunneled through (not owned)
        host_fingerprint: SHA256 fingerprint of the server's host key
    """

    def __init__(
        self,
        spec: ConnectionSpec,
        ssh: SSHClient,
        sftp: Optional[SFTPClient] = None,
        proxy: Optional[ChannelOpener] = None,
        host_fingerprint: Optional[str] = None,
    ) -> None:
        self.spec = spec
        self.ssh: Optional[SSHClient] = ssh
        self.sftp = sftp
        self.proxy = proxy
        self.host_fingerprint = host_fingerprint

    @classmethod
    def connect(cls, spec: ConnectionSpec, **options: Any) -> "Client":
        """
        Build a connected client from a connection spec.

        Args:
            spec: Connection spec; the caller's instance is not modified
            **options: See ClientOptions

        Raises:
            pydantic.ValidationError: Invalid options
            AuthMethodError: No usable credential
            OSError: Key file could not be read
            DialError: Target (or tunnel channel) unreachable
            HostIdentityMismatch: Pinned fingerprint did not match
            HandshakeError: Negotiation or authentication failed
            SubsessionUnsupported: Remote refused SFTP (not disabled)
        """
        opts = ClientOptions(**options)
        effective = spec.with_defaults()
        sink = opts.diagnostics or default_sink()

        # Credentials are resolved before any network I/O
        config = build_client_config(effective, opts.timeout, sink)

        connector = Connector(select_dialer(opts.proxy), opts.client_factory)
        ssh = connector.connect(config, effective.host, effective.port)

        sftp = None
        if opts.sftp_disabled:
            logger.debug("SFTP sub-session disabled for %s", effective.address)
        else:
            sftp = _open_sftp(ssh, effective.host)

        return cls(
            effective,
            ssh,
            sftp=sftp,
            proxy=opts.proxy,
            host_fingerprint=config.trust.observed_fingerprint,
        )

    def open_channel(self, address: Address, timeout: Optional[float] = None) -> paramiko.Channel:
        """
        Open a direct-tcpip channel to address inside this session.

        This is the capability a downstream client tunnels through. Safe to
        call from several threads at once.

        Raises:
            DialError: Session inactive or the channel was refused
        """
        hostname, port = address
        transport = self._active_transport()
        if transport is None:
            raise DialError("Proxy session is not active", hostname=hostname, port=port, error_type="channel")

        settings = get_settings()
        try:
            channel = transport.open_channel(
                "direct-tcpip",
                dest_addr=(hostname, port),
                src_addr=(settings.tunnel_origin_host, settings.tunnel_origin_port),
                timeout=timeout,
            )
        except SESSION_ERRORS as e:
            logger.error("Channel to %s:%d via %s refused: %s", hostname, port, self.spec.address, e)
            raise DialError(
                "Unable to open tunnel channel",
                hostname=hostname,
                port=port,
                error_type="channel",
                details=str(e),
            ) from e

        logger.debug("Opened channel %s:%d via %s", hostname, port, self.spec.address)
        return channel

    def run(self, command: Command, check: bool = True) -> CommandResult:
        """
        Execute a command with its streams wired to the remote process.

        Blocks until the remote process exits. There is no execution
        timeout; closing the streams or the client aborts the call.

        Args:
            command: Command line and local streams
            check: Raise ExecutionError on a non-zero exit status

        Returns:
            CommandResult with the exit status and duration

        Raises:
            ExecutionError: Non-zero exit (check=True), the session failed
                before the command completed, or a local stream (closed
                stdin, failing stdout/stderr sink) raised
        """
        line = str(command)
        transport = self._active_transport()
        if transport is None:
            raise ExecutionError("SSH session is not active", command=line)

        start_time = time.monotonic()
        try:
            channel = transport.open_session()
        except SESSION_ERRORS as e:
            raise ExecutionError("Unable to open execution channel", command=line, details=str(e)) from e

        logger.debug("Executing on %s: %s", self.spec.address, line)
        try:
            exit_code = _execute(channel, command, get_settings().io_buffer_size)
        except SESSION_ERRORS as e:
            logger.error("Command execution on %s failed: %s", self.spec.address, e)
            raise ExecutionError(f"Command execution failed: {e}", command=line, details=str(e)) from e
        except Exception as e:
            logger.error("Local stream error while running command on %s: %s", self.spec.address, e)
            raise ExecutionError(f"Local stream error: {e}", command=line, details=str(e)) from e
        finally:
            channel.close()

        duration = time.monotonic() - start_time
        if exit_code < 0:
            raise ExecutionError("Session ended without an exit status", command=line)

        result = CommandResult(command=line, exit_code=exit_code, duration=duration)
        logger.debug("Command on %s exited with %d after %.2fs", self.spec.address, exit_code, duration)
        if check and not result.success:
            raise ExecutionError("Remote command exited with non-zero status", command=line, exit_code=exit_code)
        return result

    def close(self) -> None:
        """
        Close the SFTP sub-session, then the SSH session.

        If closing SFTP fails, the error is raised and the SSH session is
        left open; calling close() again retries the SSH close. The proxy
        is never closed here.

        Raises:
            TeardownError: Closing either layer failed
        """
        # TODO: decide whether a failed SFTP close should still close SSH and aggregate both errors
        if self.sftp is not None:
            try:
                self.sftp.close()
            except Exception as e:
                logger.error("Error closing SFTP session to %s: %s", self.spec.address, e)
                raise TeardownError("Failed to close SFTP session", resource="sftp", details=str(e)) from e
            self.sftp = None

        if self.ssh is not None:
            try:
                self.ssh.close()
            except Exception as e:
                logger.error("Error closing SSH session to %s: %s", self.spec.address, e)
                raise TeardownError("Failed to close SSH session", resource="ssh", details=str(e)) from e
            self.ssh = None
            logger.debug("Closed SSH session to %s", self.spec.address)

    def _active_transport(self) -> Optional[paramiko.Transport]:
        if self.ssh is None:
            return None
        transport = self.ssh.get_transport()
        if transport is None or not transport.is_active():
            return None
        return transport

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        if exc_type is None:
            self.close()
            return
        # Keep the exception raised inside the with block
        try:
            self.close()
        except TeardownError as e:
            logger.error("Teardown of %s failed while handling %s: %s", self.spec.address, exc_type.__name__, e)

    def __repr__(self) -> str:
        return (
            f"Client(target={self.spec.user}@{self.spec.address}, "
            f"sftp={self.sftp is not None}, proxied={self.proxy is not None})"
        )


def new_client(spec: ConnectionSpec, **options: Any) -> Client:
    """
    Factory function to create a connected client.

    Example:
        >>> client = new_client(spec, timeout=10, sftp_disabled=True)
        >>> client.run(Command("hostname", stdout=buffer))
        >>> client.close()
    """
    return Client.connect(spec, **options)


def _open_sftp(ssh: SSHClient, hostname: str) -> SFTPClient:
    try:
        sftp = ssh.open_sftp()
    except SESSION_ERRORS as e:
        logger.error("SFTP subsystem unavailable on %s: %s", hostname, e)
        ssh.close()
        raise SubsessionUnsupported(hostname, details=str(e)) from e
    logger.debug("SFTP sub-session opened on %s", hostname)
    return sftp


class _Pump(threading.Thread):
    """Copies one channel stream into a local sink until EOF."""

    def __init__(self, read: Callable[[int], bytes], sink: Optional[IO[bytes]], size: int) -> None:
        super().__init__(daemon=True)
        self.read = read
        self.sink = sink
        self.size = size
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            _copy(self.read, self.sink, self.size)
        except Exception as e:
            # Remote read or local sink failure, re-raised by _execute
            self.error = e


class _StdinFeeder(threading.Thread):
    """Sends a local stream to the remote stdin, then signals EOF."""

    def __init__(self, channel: paramiko.Channel, source: IO[bytes], size: int) -> None:
        super().__init__(daemon=True)
        self.channel = channel
        self.source = source
        self.size = size
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            while True:
                data = self.source.read(self.size)
                if not data:
                    break
                self.channel.sendall(data)
        except OSError as e:
            if self.channel.closed or self.channel.exit_status_ready():
                # Remote process finished without consuming all input
                logger.debug("Stopped feeding stdin: %s", e)
            else:
                self.error = e
        except Exception as e:
            # Local source failed, e.g. the caller closed the handle
            self.error = e
        finally:
            self._send_eof()

    def _send_eof(self) -> None:
        try:
            self.channel.shutdown_write()
        except SESSION_ERRORS as e:
            logger.debug("Unable to send EOF on stdin: %s", e)


def _copy(read: Callable[[int], bytes], sink: Optional[IO[bytes]], size: int) -> None:
    while True:
        data = read(size)
        if not data:
            break
        if sink is not None:
            sink.write(data)
    if sink is not None:
        sink.flush()


def _execute(channel: paramiko.Channel, command: Command, size: int) -> int:
    channel.exec_command(command.line)

    feeder = None
    if command.stdin is not None:
        feeder = _StdinFeeder(channel, command.stdin, size)
        feeder.start()
    else:
        channel.shutdown_write()

    stderr_pump = _Pump(channel.recv_stderr, command.stderr, size)
    stderr_pump.start()
    _copy(channel.recv, command.stdout, size)
    stderr_pump.join()

    if stderr_pump.error is not None:
        raise stderr_pump.error

    exit_code = channel.recv_exit_status()

    # feeder.error is set before EOF is sent. A feeder still blocked on
    # local input is abandoned; the remote side is done.
    if feeder is not None and feeder.error is not None:
        raise feeder.error
    return exit_code


__all__ = ["ClientOptions", "Client", "new_client"]
