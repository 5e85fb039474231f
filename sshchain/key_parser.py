"""
SSH Key Parser Module

Turns private key material into paramiko PKey objects and computes the
OpenSSH style SHA256 fingerprints used for host key pinning.

Functions:
    - expand_home: Expand a leading "~" to the current user's home directory
    - read_key_file: Read key material from disk
    - parse_private_key: Parse (and optionally decrypt) a private key
    - get_key_fingerprint_sha256: Fingerprint a public key ("SHA256:...")

Usage:
    from sshchain.key_parser import parse_private_key

    pkey = parse_private_key(key_text, passphrase="secret")
    print(pkey.get_name())

Security Notes:
    - Key content and passphrases are never logged
    - Fingerprints are safe to log and display
"""

import base64
import hashlib
import io
import logging
import os
from pathlib import Path
from typing import Optional

import paramiko
from paramiko import ECDSAKey, Ed25519Key, RSAKey

from .exceptions import KeyDecryptionError, KeyParseError

try:
    import pwd
except ImportError:  # Windows
    pwd = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

# Order: Ed25519 (modern, recommended), RSA (common), ECDSA
# Note: DSA keys are not supported (deprecated, insecure)
KEY_CLASSES = [
    (Ed25519Key, "Ed25519"),
    (RSAKey, "RSA"),
    (ECDSAKey, "ECDSA"),
]


def current_user_home() -> str:
    """
    Home directory of the account running this process.

    Read from the password database, so $HOME does not override it. Platforms
    without one fall back to Path.home().
    """
    if pwd is not None:
        return pwd.getpwuid(os.getuid()).pw_dir
    return str(Path.home())


def expand_home(path: str) -> str:
    """
    Replace a leading "~" with the current user's home directory.

    Only the bare shorthand is understood; "~other" is not resolved
    against another user's account.
    """
    if path.startswith("~"):
        return current_user_home() + path[1:]
    return path


def read_key_file(path: str) -> str:
    """
    Read private key material from a file.

    Storage errors (missing file, permission denied) are not wrapped.
    """
    resolved = expand_home(path)
    logger.debug("Reading private key file %s", resolved)
    return Path(resolved).read_text(encoding="utf-8")


def parse_private_key(key_material: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """
    Parse private key material into a paramiko PKey.

    Each supported key type is tried in turn. With a passphrase the key is
    treated as encrypted, so any failure is reported as a decryption error;
    without one, an encrypted key is reported as needing a passphrase and
    anything else as a parse error.

    Args:
        key_material: Private key in PEM or OpenSSH format
        passphrase: Passphrase for encrypted keys

    Returns:
        paramiko.PKey (Ed25519Key, RSAKey or ECDSAKey)

    Raises:
        KeyDecryptionError: Wrong passphrase, or encrypted key without one
        KeyParseError: Key is malformed or of an unsupported type
    """
    content = key_material.strip()
    last_error = None

    for key_class, key_name in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(content), password=passphrase or None)
        except paramiko.PasswordRequiredException:
            raise KeyDecryptionError(
                "Private key is encrypted and requires a passphrase",
                details=key_name,
            )
        except paramiko.SSHException as e:
            # Wrong key type or wrong passphrase - try next
            last_error = str(e)
            continue
        except Exception as e:
            last_error = f"{type(e).__name__}: {e}"
            continue

    if passphrase:
        raise KeyDecryptionError(
            "Unable to decrypt private key with the supplied passphrase",
            details=last_error,
        )
    raise KeyParseError(
        "Unable to parse private key - unsupported or malformed format",
        details=last_error,
    )


def get_key_fingerprint_sha256(key: paramiko.PKey) -> str:
    """
    Fingerprint a key the way OpenSSH displays it.

    The SHA256 digest of the public key in SSH wire format, base64
    encoded without padding and prefixed with "SHA256:".

    Example:
        >>> get_key_fingerprint_sha256(host_key)
        'SHA256:nThbg6kXUpJWGl7E1IGOCspRomTxdCARLviKw6E5SY8'
    """
    sha256_hash = hashlib.sha256(key.asbytes()).digest()
    b64_hash = base64.b64encode(sha256_hash).decode("ascii").rstrip("=")
    return f"SHA256:{b64_hash}"


__all__ = [
    "KEY_CLASSES",
    "current_user_home",
    "expand_home",
    "read_key_file",
    "parse_private_key",
    "get_key_fingerprint_sha256",
]
