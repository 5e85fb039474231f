"""
Credential Resolver

Turns the credential fields of a ConnectionSpec into exactly one
authentication method.

Precedence:
    1. Inline key material (spec.key), if non-empty
    2. Otherwise the key file (spec.key_file), "~" expanded, read from disk
    3. Key material + passphrase -> decrypted key; without passphrase ->
       parsed as an unencrypted key
    4. No key material but a password -> password authentication
       (reported to the diagnostic sink as insecure)
    5. Nothing usable -> AuthMethodError

Reading the key file is the only I/O performed here. Storage errors from
that read propagate unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import paramiko

from .diagnostics import DiagnosticSink, default_sink
from .exceptions import AuthMethodError
from .key_parser import parse_private_key, read_key_file
from .models import ConnectionSpec

logger = logging.getLogger(__name__)

PASSWORD_AUTH_WARNINGS = (
    "Using password authentication is insecure!",
    "Please consider using public key authentication!",
)


class AuthMethod:
    """Base class of resolved authentication methods."""

    kind: str = ""

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for paramiko.SSHClient.connect()."""
        raise NotImplementedError


@dataclass(frozen=True)
class PublicKeyAuth(AuthMethod):
    """Authenticate with a private key."""

    pkey: paramiko.PKey = field(repr=False)
    kind: str = "publickey"

    def connect_kwargs(self) -> Dict[str, Any]:
        return {"pkey": self.pkey}


@dataclass(frozen=True)
class PasswordAuth(AuthMethod):
    """Authenticate with a password."""

    password: str = field(repr=False)
    kind: str = "password"

    def connect_kwargs(self) -> Dict[str, Any]:
        return {"password": self.password}


def load_key_material(spec: ConnectionSpec) -> Optional[str]:
    """
    Return the key material for a spec, or None if it has none.

    Inline material wins; the key file is never opened when inline
    material is present.
    """
    if spec.key:
        return spec.key
    if spec.key_file:
        return read_key_file(spec.key_file)
    return None


def resolve_auth_method(spec: ConnectionSpec, diagnostics: Optional[DiagnosticSink] = None) -> AuthMethod:
    """
    Resolve the single authentication method for a connection spec.

    Args:
        spec: Connection spec carrying the credential fields
        diagnostics: Sink receiving the password authentication warnings

    Returns:
        PublicKeyAuth or PasswordAuth

    Raises:
        KeyDecryptionError: Encrypted key could not be decrypted
        KeyParseError: Key material could not be parsed
        AuthMethodError: Neither key material nor a password was given
        OSError: Key file could not be read
    """
    sink = diagnostics or default_sink()

    key_material = load_key_material(spec)
    if key_material:
        pkey = parse_private_key(key_material, spec.passphrase or None)
        logger.debug("Using public key authentication (%s, %d bits)", pkey.get_name(), pkey.get_bits())
        return PublicKeyAuth(pkey=pkey)

    if spec.password:
        for message in PASSWORD_AUTH_WARNINGS:
            sink.warning(message)
        return PasswordAuth(password=spec.password)

    raise AuthMethodError("No authentication method specified")


__all__ = [
    "PASSWORD_AUTH_WARNINGS",
    "AuthMethod",
    "PublicKeyAuth",
    "PasswordAuth",
    "load_key_material",
    "resolve_auth_method",
]
