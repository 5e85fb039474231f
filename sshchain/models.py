"""
SSH Chain Data Models

Type-safe structures shared by the connection pipeline:

- ConnectionSpec: Flat description of one SSH endpoint and its credentials
- TrustMode: How the server's host key is verified
- Command: A command line plus the streams wired into its remote process
- CommandResult: Outcome of one command execution

Security Considerations:
- repr() of a ConnectionSpec never shows passwords, keys or passphrases
- CommandResult carries no output, the caller owns the output streams

Usage:
    from sshchain.models import ConnectionSpec, Command

    spec = ConnectionSpec.model_validate(
        {"host": "db.internal", "key-file": "~/.ssh/id_ed25519"}
    )
    command = Command.from_args("ls", "-la", "/var/log", stdout=buffer)
"""

import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .key_parser import expand_home

DEFAULT_PORT = 22
DEFAULT_USER = "root"


class ConnectionSpec(BaseModel):
    """
    Connection parameters for one SSH endpoint.

    Field names mirror configuration files; the hyphenated "key-file"
    spelling is accepted as an alias of key_file.

    Attributes:
        host: Target host name or address (required)
        port: SSH port; 0 means "use the default" (22)
        user: Login user; empty means "use the default" (root)
        password: Password for password authentication
        key: Inline private key material (PEM/OpenSSH text)
        key_file: Path to a private key file, may start with "~"
        passphrase: Passphrase that decrypts an encrypted private key
        fingerprint: Pinned host key in "SHA256:<base64>" form
    """

    model_config = ConfigDict(populate_by_name=True)

    host: str
    port: int = DEFAULT_PORT
    user: str = DEFAULT_USER
    password: Optional[str] = Field(default=None, repr=False)
    key: Optional[str] = Field(default=None, repr=False)
    key_file: Optional[str] = Field(default=None, alias="key-file")
    passphrase: Optional[str] = Field(default=None, repr=False)
    fingerprint: Optional[str] = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def with_defaults(self) -> "ConnectionSpec":
        """
        Return a copy with an unset port and user filled in and a leading
        "~" in key_file expanded to the current user's home directory.

        The caller's instance is left untouched.
        """
        effective = self.model_copy()
        if not effective.port:
            effective.port = DEFAULT_PORT
        if not effective.user:
            effective.user = DEFAULT_USER
        if effective.key_file:
            effective.key_file = expand_home(effective.key_file)
        return effective


class TrustMode(Enum):
    """
    Host key verification modes.

    Attributes:
        PINNED: Compare the server key against a configured fingerprint
        ACCEPT_ANY: Accept any host key (insecure, always reported)
    """

    PINNED = "pinned"
    ACCEPT_ANY = "accept_any"


@dataclass
class Command:
    """
    A command line and the local streams bound to its remote process.

    Streams are binary file-like objects. A missing stdin sends EOF
    immediately; missing stdout/stderr discard the remote output.
    """

    line: str
    stdin: Optional[IO[bytes]] = None
    stdout: Optional[IO[bytes]] = None
    stderr: Optional[IO[bytes]] = None

    @classmethod
    def from_args(cls, *args: str, **streams: Any) -> "Command":
        """Build a command from an argv list using POSIX shell quoting."""
        return cls(shlex.join(args), **streams)

    def __str__(self) -> str:
        return self.line


@dataclass
class CommandResult:
    """
    Outcome of executing a command over SSH.

    Attributes:
        command: The command line that was executed
        exit_code: Remote exit status
        success: True when exit_code == 0
        duration: Wall time in seconds, from channel open to exit status
    """

    command: str
    exit_code: int
    duration: float = 0.0
    success: bool = field(init=False)

    def __post_init__(self) -> None:
        self.success = self.exit_code == 0

    def __repr__(self) -> str:
        return (
            f"CommandResult(success={self.success}, "
            f"exit_code={self.exit_code}, "
            f"duration={self.duration:.2f}s)"
        )

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "success": self.success,
            "exit_code": self.exit_code,
            "duration": self.duration,
        }


__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_USER",
    "ConnectionSpec",
    "TrustMode",
    "Command",
    "CommandResult",
]
