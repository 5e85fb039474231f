"""
sshchain

Authenticated, optionally tunneled SSH connections with command execution
and an SFTP sub-session, built on paramiko.

Module Architecture:
    sshchain/
    ├── __init__.py           # This file - public API
    ├── config.py             # Environment driven defaults
    ├── models.py             # ConnectionSpec, Command, CommandResult
    ├── exceptions.py         # Error hierarchy
    ├── diagnostics.py        # Sinks for security warnings
    ├── key_parser.py         # Key loading, parsing and fingerprints
    ├── credentials.py        # Credential resolution and precedence
    ├── policies.py           # Host key trust policies
    ├── connection_config.py  # paramiko connect() arguments
    ├── dialers.py            # Direct and tunneled dialing
    ├── connector.py          # Dial + handshake
    └── client.py             # Client lifecycle and command execution

Usage:
    from sshchain import Command, ConnectionSpec, new_client

    spec = ConnectionSpec(host="server.example.com", key_file="~/.ssh/id_ed25519",
                          fingerprint="SHA256:nThbg6kXUpJWGl7E1IGOCspRomTxdCARLviKw6E5SY8")
    with new_client(spec, timeout=10) as client:
        client.run(Command("uname -a", stdout=sys.stdout.buffer))

Security Notes:
    - Password authentication and unpinned host keys are reported as
      warnings through the diagnostic sink every time they are chosen
    - Credentials are never logged
"""

from .client import Client, ClientOptions, new_client
from .config import SSHChainSettings, get_settings
from .credentials import AuthMethod, PasswordAuth, PublicKeyAuth, resolve_auth_method
from .diagnostics import DiagnosticSink, LoggingDiagnosticSink, RecordingDiagnosticSink
from .dialers import ChannelOpener, DirectDialer, TunnelDialer
from .exceptions import (
    AuthMethodError,
    DialError,
    ExecutionError,
    HandshakeError,
    HostIdentityMismatch,
    KeyDecryptionError,
    KeyParseError,
    SSHChainError,
    SubsessionUnsupported,
    TeardownError,
)
from .key_parser import get_key_fingerprint_sha256, parse_private_key
from .models import Command, CommandResult, ConnectionSpec, TrustMode
from .policies import AcceptAnyHostKeyPolicy, PinnedFingerprintPolicy, TrustDecision, create_trust_policy

__version__ = "1.0.0"

__all__ = [
    # Factory and client
    "new_client",
    "Client",
    "ClientOptions",
    # Configuration
    "SSHChainSettings",
    "get_settings",
    # Models
    "ConnectionSpec",
    "Command",
    "CommandResult",
    "TrustMode",
    # Credentials and trust
    "AuthMethod",
    "PublicKeyAuth",
    "PasswordAuth",
    "resolve_auth_method",
    "TrustDecision",
    "PinnedFingerprintPolicy",
    "AcceptAnyHostKeyPolicy",
    "create_trust_policy",
    "parse_private_key",
    "get_key_fingerprint_sha256",
    # Dialing
    "ChannelOpener",
    "DirectDialer",
    "TunnelDialer",
    # Diagnostics
    "DiagnosticSink",
    "LoggingDiagnosticSink",
    "RecordingDiagnosticSink",
    # Exceptions
    "SSHChainError",
    "AuthMethodError",
    "KeyParseError",
    "KeyDecryptionError",
    "HostIdentityMismatch",
    "DialError",
    "HandshakeError",
    "SubsessionUnsupported",
    "ExecutionError",
    "TeardownError",
]
