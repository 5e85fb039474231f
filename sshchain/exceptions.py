"""
SSH Chain Exceptions

Exception classes raised while resolving credentials, verifying host
identities, dialing, authenticating, executing commands and tearing down
sessions. Every error carries structured context that is safe to log:
messages never contain passwords, key material or passphrases.

This module defines:
- SSHChainError: Common base class
- AuthMethodError: No usable credential (KeyParseError, KeyDecryptionError)
- HostIdentityMismatch: Pinned fingerprint does not match the server
- DialError: Network or tunnel-channel failure
- HandshakeError: Protocol negotiation or authentication rejected
- SubsessionUnsupported: Remote refuses the SFTP subsystem
- ExecutionError: Remote command failed or the session died mid-command
- TeardownError: Closing the SFTP or SSH layer failed

Nothing in this package retries automatically. Retrying authentication
failures risks account lockouts and retrying a host identity mismatch
would defeat fingerprint pinning, so retry policy belongs to the caller.

Usage:
    from sshchain.exceptions import HostIdentityMismatch

    try:
        client = new_client(spec)
    except HostIdentityMismatch as e:
        logger.error("Refusing %s: %s", e.hostname, e)
"""

from typing import Optional


class SSHChainError(Exception):
    """
    Base class for all sshchain errors.

    Attributes:
        message: Human-readable error description
        details: Additional context for debugging (never secrets)
    """

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, details={self.details!r})"


class AuthMethodError(SSHChainError):
    """
    Raised when no authentication method can be built from a spec.

    Covers both a spec without any credential and key material that
    cannot be turned into a signer.
    """


class KeyParseError(AuthMethodError):
    """Raised when an unencrypted private key cannot be parsed."""


class KeyDecryptionError(AuthMethodError):
    """
    Raised when an encrypted private key cannot be decrypted.

    This is the wrong-passphrase case, and also the case of an encrypted
    key supplied without any passphrase.
    """


class HostIdentityMismatch(SSHChainError):
    """
    Raised when the server presents a host key other than the pinned one.

    Attributes:
        expected: The pinned fingerprint from the connection spec
        observed: The fingerprint of the key the server presented
        hostname: Host name as seen by the handshake

    Example:
        >>> try:
        ...     client = new_client(spec)
        ... except HostIdentityMismatch as e:
        ...     print(e.expected, e.observed)
    """

    def __init__(self, expected: str, observed: str, hostname: Optional[str] = None) -> None:
        self.expected = expected
        self.observed = observed
        self.hostname = hostname
        super().__init__(
            "Host key fingerprint mismatch",
            details=f"expected {expected}, server presented {observed}",
        )

    def __str__(self) -> str:
        target = f" for {self.hostname}" if self.hostname else ""
        return f"{self.message}{target}: expected {self.expected}, " f"server fingerprint {self.observed}"

    def __repr__(self) -> str:
        return (
            f"HostIdentityMismatch(expected={self.expected!r}, "
            f"observed={self.observed!r}, hostname={self.hostname!r})"
        )


class _TargetError(SSHChainError):
    """Shared shape for errors tied to a host:port target."""

    def __init__(
        self,
        message: str,
        hostname: Optional[str] = None,
        port: Optional[int] = None,
        error_type: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.error_type = error_type
        super().__init__(message, details=details)

    def __str__(self) -> str:
        if self.hostname:
            return f"{self.message} (target: {self.hostname}:{self.port or 22})"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"hostname={self.hostname!r}, port={self.port!r}, "
            f"error_type={self.error_type!r})"
        )


class DialError(_TargetError):
    """
    Raised when the transport to the target cannot be reached.

    Error Types:
        - timeout: Connect timed out
        - refused: Connection actively refused
        - unreachable: No route to host
        - unresolved: Host name could not be resolved
        - network: Any other socket level failure
        - channel: The proxy refused or failed to open a tunnel channel
    """


class HandshakeError(_TargetError):
    """
    Raised when the SSH handshake over an established stream fails.

    Error Types:
        - auth_failed: Credentials rejected by the server
        - protocol_error: Banner, key exchange or negotiation failure
        - timeout: Handshake did not complete in time
    """


class SubsessionUnsupported(SSHChainError):
    """Raised when the remote end does not provide the SFTP subsystem."""

    def __init__(self, hostname: Optional[str] = None, details: Optional[str] = None) -> None:
        self.hostname = hostname
        super().__init__("Remote host does not support the SFTP subsystem", details=details)

    def __str__(self) -> str:
        if self.hostname:
            return f"{self.message} (host: {self.hostname})"
        return self.message


class ExecutionError(SSHChainError):
    """
    Raised when a remote command does not complete successfully.

    Attributes:
        command: The command line (truncated to 100 characters)
        exit_code: Remote exit status, or None if the session failed
            before an exit status was received
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        exit_code: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        # Truncate command to prevent log injection and sensitive data exposure
        self.command = command[:100] + "..." if command and len(command) > 100 else command
        self.exit_code = exit_code
        super().__init__(message, details=details)

    def __str__(self) -> str:
        parts = [self.message]
        if self.exit_code is not None:
            parts.append(f"exit code: {self.exit_code}")
        if self.command:
            parts.append(f"command: {self.command}")
        return " | ".join(parts)

    def __repr__(self) -> str:
        return f"ExecutionError(message={self.message!r}, " f"command={self.command!r}, exit_code={self.exit_code!r})"


class TeardownError(SSHChainError):
    """
    Raised when closing one of the client's layers fails.

    Attributes:
        resource: "sftp" or "ssh"
    """

    def __init__(self, message: str, resource: str, details: Optional[str] = None) -> None:
        self.resource = resource
        super().__init__(message, details=details)

    def __str__(self) -> str:
        return f"{self.message} (resource: {self.resource})"


__all__ = [
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
