"""
Unit test fixtures and fakes.

Provides in-process stand-ins for paramiko's SSHClient, Transport and
Channel so the connection pipeline can be exercised without any network
access. Key material is generated per test session and never stored.
"""

import io
import threading
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock, patch

import paramiko
import pytest

from sshchain.config import get_settings
from sshchain.diagnostics import RecordingDiagnosticSink

TEST_PASSPHRASE = "correct horse battery staple"  # pragma: allowlist secret


# =============================================================================
# Fakes
# =============================================================================


class EchoChannel:
    """
    Execution channel stub that echoes stdin back on stdout.

    Remote stdout reaches EOF once stdin is shut down; stderr carries a
    fixed payload; the exit status is fixed at construction.
    """

    def __init__(self, exit_status: int = 0, stderr_data: bytes = b"") -> None:
        self._cond = threading.Condition()
        self._stdout = bytearray()
        self._stderr = bytearray(stderr_data)
        self._eof = False
        self.exit_status = exit_status
        self.command: Optional[str] = None
        self.closed = False

    def exec_command(self, command: str) -> None:
        self.command = command

    def sendall(self, data: bytes) -> None:
        with self._cond:
            if self._eof:
                raise OSError("Socket is closed")
            self._stdout.extend(data)
            self._cond.notify_all()

    def shutdown_write(self) -> None:
        with self._cond:
            self._eof = True
            self._cond.notify_all()

    def recv(self, size: int) -> bytes:
        with self._cond:
            self._cond.wait_for(lambda: self._stdout or self._eof)
            chunk = bytes(self._stdout[:size])
            del self._stdout[:size]
            return chunk

    def recv_stderr(self, size: int) -> bytes:
        with self._cond:
            self._cond.wait_for(lambda: self._stderr or self._eof)
            chunk = bytes(self._stderr[:size])
            del self._stderr[:size]
            return chunk

    def exit_status_ready(self) -> bool:
        return self._eof

    def recv_exit_status(self) -> int:
        with self._cond:
            self._cond.wait_for(lambda: self._eof)
            return self.exit_status

    def close(self) -> None:
        with self._cond:
            self.closed = True
            self._eof = True
            self._cond.notify_all()


class FakeTransport:
    """Transport stub recording every channel it is asked to open."""

    def __init__(self) -> None:
        self.active = True
        self.opened_channels: List[Tuple[str, Any, Any]] = []
        self.tunnel_channels: List[MagicMock] = []
        self.sessions: List[EchoChannel] = []
        self.session_exit_status = 0
        self.session_stderr = b""
        self.open_channel_error: Optional[BaseException] = None
        self._lock = threading.Lock()

    def is_active(self) -> bool:
        return self.active

    def open_channel(self, kind: str, dest_addr: Any = None, src_addr: Any = None, timeout: Any = None) -> Any:
        if self.open_channel_error is not None:
            raise self.open_channel_error
        channel = MagicMock(name=f"channel-{dest_addr}")
        with self._lock:
            self.opened_channels.append((kind, dest_addr, src_addr))
            self.tunnel_channels.append(channel)
        return channel

    def open_session(self, timeout: Any = None) -> EchoChannel:
        channel = EchoChannel(self.session_exit_status, self.session_stderr)
        with self._lock:
            self.sessions.append(channel)
        return channel


class FakeSSHClient:
    """
    paramiko.SSHClient stand-in.

    connect() records its arguments and, like paramiko with an empty
    known_hosts, hands the server key to the installed policy.
    """

    def __init__(
        self,
        server_key: Optional[paramiko.PKey] = None,
        connect_error: Optional[BaseException] = None,
        sftp_error: Optional[BaseException] = None,
    ) -> None:
        self.server_key = server_key
        self.connect_error = connect_error
        self.sftp_error = sftp_error
        self.policy: Optional[paramiko.MissingHostKeyPolicy] = None
        self.connect_kwargs: Dict[str, Any] = {}
        self.transport = FakeTransport()
        self.sftp = MagicMock(name="sftp")
        self.closed = False

    def set_missing_host_key_policy(self, policy: paramiko.MissingHostKeyPolicy) -> None:
        self.policy = policy

    def connect(self, hostname: str, port: int = 22, **kwargs: Any) -> None:
        self.connect_kwargs = dict(hostname=hostname, port=port, **kwargs)
        if self.server_key is not None and self.policy is not None:
            self.policy.missing_host_key(self, hostname, self.server_key)
        if self.connect_error is not None:
            raise self.connect_error

    def get_transport(self) -> Optional[FakeTransport]:
        if self.closed:
            return None
        return self.transport

    def open_sftp(self) -> Any:
        if self.sftp_error is not None:
            raise self.sftp_error
        return self.sftp

    def close(self) -> None:
        self.closed = True
        self.transport.active = False


class FakeClientFactory:
    """Callable passed as client_factory; keeps every client it built."""

    def __init__(self, server_key: Optional[paramiko.PKey] = None) -> None:
        self.server_key = server_key
        self.created: List[FakeSSHClient] = []
        self.options: Dict[str, Any] = {}

    def __call__(self) -> FakeSSHClient:
        client = FakeSSHClient(server_key=self.server_key, **self.options)
        self.created.append(client)
        return client

    @property
    def last(self) -> FakeSSHClient:
        return self.created[-1]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so environment changes apply per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def host_key() -> paramiko.PKey:
    """Server host key presented during fake handshakes."""
    return paramiko.ECDSAKey.generate()


@pytest.fixture(scope="session")
def client_key() -> paramiko.PKey:
    """Client private key used for public key authentication."""
    return paramiko.ECDSAKey.generate()


@pytest.fixture(scope="session")
def client_key_pem(client_key: paramiko.PKey) -> str:
    """Unencrypted PEM text of client_key."""
    buf = io.StringIO()
    client_key.write_private_key(buf)
    return buf.getvalue()


@pytest.fixture(scope="session")
def encrypted_key_pem(client_key: paramiko.PKey) -> str:
    """PEM text of client_key encrypted with TEST_PASSPHRASE."""
    buf = io.StringIO()
    client_key.write_private_key(buf, password=TEST_PASSPHRASE)
    return buf.getvalue()


@pytest.fixture
def sink() -> RecordingDiagnosticSink:
    """Diagnostic sink that records warnings."""
    return RecordingDiagnosticSink()


@pytest.fixture
def client_factory(host_key: paramiko.PKey) -> FakeClientFactory:
    """Factory of FakeSSHClient instances presenting host_key."""
    return FakeClientFactory(server_key=host_key)


@pytest.fixture
def create_connection():
    """Patch the network dial; returns the mock."""
    with patch("sshchain.dialers.socket.create_connection") as mock_connect:
        mock_connect.return_value = MagicMock(name="socket")
        yield mock_connect


@pytest.fixture
def home_dir(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Point "~" expansion at a temporary directory."""
    monkeypatch.setattr("sshchain.key_parser.current_user_home", lambda: str(tmp_path))
    return tmp_path
