"""
Unit Tests for Credential Resolution

Tests the precedence rules that turn a ConnectionSpec into exactly one
authentication method:
- Inline key material beats the key file (file is never opened)
- Key file is read (with "~" expansion) when no inline key is given
- Passphrase decrypts encrypted keys
- Password authentication is the fallback and is always reported
- No credential at all is an AuthMethodError
"""

from pathlib import Path
from unittest.mock import patch

import paramiko
import pytest

from sshchain.credentials import (
    PASSWORD_AUTH_WARNINGS,
    PasswordAuth,
    PublicKeyAuth,
    load_key_material,
    resolve_auth_method,
)
from sshchain.diagnostics import RecordingDiagnosticSink
from sshchain.exceptions import AuthMethodError, KeyDecryptionError, KeyParseError
from sshchain.models import ConnectionSpec

from .conftest import TEST_PASSPHRASE

MISSING_KEY_FILE = "/nonexistent/sshchain-tests/id_ed25519"


# =============================================================================
# Precedence Tests
# =============================================================================


class TestKeyPrecedence:
    """Tests for which key material wins."""

    def test_inline_key_wins_over_key_file(self, client_key: paramiko.PKey, client_key_pem: str) -> None:
        """
        Verify inline key material is used and the key file is never read.

        The key file does not exist, so any attempt to read it would fail.
        """
        spec = ConnectionSpec(host="example.test", key=client_key_pem, key_file=MISSING_KEY_FILE)

        with patch("sshchain.credentials.read_key_file") as mock_read:
            auth = resolve_auth_method(spec, RecordingDiagnosticSink())

        mock_read.assert_not_called()
        assert isinstance(auth, PublicKeyAuth)
        assert auth.pkey.asbytes() == client_key.asbytes()

    def test_inline_key_with_missing_file_resolves(self, client_key_pem: str) -> None:
        """Verify a missing key file is irrelevant when an inline key exists."""
        spec = ConnectionSpec(host="example.test", key=client_key_pem, key_file=MISSING_KEY_FILE)

        auth = resolve_auth_method(spec, RecordingDiagnosticSink())

        assert auth.kind == "publickey"

    def test_key_file_used_without_inline_key(
        self, tmp_path: Path, client_key: paramiko.PKey, client_key_pem: str
    ) -> None:
        """Verify the key file is read when no inline key is given."""
        key_path = tmp_path / "id_ecdsa"
        key_path.write_text(client_key_pem)
        spec = ConnectionSpec(host="example.test", key_file=str(key_path))

        auth = resolve_auth_method(spec, RecordingDiagnosticSink())

        assert isinstance(auth, PublicKeyAuth)
        assert auth.pkey.asbytes() == client_key.asbytes()

    def test_key_file_home_expansion(self, home_dir: Path, client_key_pem: str) -> None:
        """Verify "~/..." key files resolve against the home directory."""
        (home_dir / ".ssh").mkdir()
        (home_dir / ".ssh" / "id_ecdsa").write_text(client_key_pem)
        spec = ConnectionSpec(host="example.test", key_file="~/.ssh/id_ecdsa")

        assert load_key_material(spec) == client_key_pem

    def test_key_beats_password(self, client_key_pem: str, sink: RecordingDiagnosticSink) -> None:
        """Verify a key is preferred over a password and no warning is emitted."""
        spec = ConnectionSpec(host="example.test", key=client_key_pem, password="secret")

        auth = resolve_auth_method(spec, sink)

        assert isinstance(auth, PublicKeyAuth)
        assert sink.warnings == []

    def test_missing_key_file_propagates_unwrapped(self) -> None:
        """
        Verify storage errors surface as the original OSError.
        """
        spec = ConnectionSpec(host="example.test", key_file=MISSING_KEY_FILE, password="secret")

        with pytest.raises(FileNotFoundError):
            resolve_auth_method(spec, RecordingDiagnosticSink())

    def test_empty_key_file_falls_back_to_password(self, tmp_path: Path, sink: RecordingDiagnosticSink) -> None:
        """Verify an empty key file counts as no key material."""
        key_path = tmp_path / "empty"
        key_path.write_text("")
        spec = ConnectionSpec(host="example.test", key_file=str(key_path), password="secret")

        auth = resolve_auth_method(spec, sink)

        assert isinstance(auth, PasswordAuth)


# =============================================================================
# Encrypted Key Tests
# =============================================================================


class TestEncryptedKeys:
    """Tests for passphrase handling."""

    def test_passphrase_decrypts_key(self, client_key: paramiko.PKey, encrypted_key_pem: str) -> None:
        """Verify a correct passphrase yields public key auth."""
        spec = ConnectionSpec(host="example.test", key=encrypted_key_pem, passphrase=TEST_PASSPHRASE)

        auth = resolve_auth_method(spec, RecordingDiagnosticSink())

        assert isinstance(auth, PublicKeyAuth)
        assert auth.pkey.asbytes() == client_key.asbytes()

    def test_wrong_passphrase_fails_with_decryption_error(self, encrypted_key_pem: str) -> None:
        """
        Verify a wrong passphrase is a decryption error, not a parse error.
        """
        spec = ConnectionSpec(host="example.test", key=encrypted_key_pem, passphrase="not it")

        with pytest.raises(KeyDecryptionError):
            resolve_auth_method(spec, RecordingDiagnosticSink())

    def test_wrong_passphrase_does_not_fall_back_to_password(self, encrypted_key_pem: str) -> None:
        """Verify a broken key is an error even if a password is present."""
        spec = ConnectionSpec(
            host="example.test",
            key=encrypted_key_pem,
            passphrase="not it",
            password="secret",
        )

        with pytest.raises(KeyDecryptionError):
            resolve_auth_method(spec, RecordingDiagnosticSink())

    def test_malformed_key_fails_with_parse_error(self) -> None:
        """Verify unparseable key text is a KeyParseError."""
        spec = ConnectionSpec(host="example.test", key="not a key")

        with pytest.raises(KeyParseError):
            resolve_auth_method(spec, RecordingDiagnosticSink())


# =============================================================================
# Password Fallback Tests
# =============================================================================


class TestPasswordFallback:
    """Tests for password authentication and its warnings."""

    def test_password_auth_selected(self, sink: RecordingDiagnosticSink) -> None:
        """Verify password auth when no key material is present."""
        spec = ConnectionSpec(host="example.test", password="x")

        auth = resolve_auth_method(spec, sink)

        assert isinstance(auth, PasswordAuth)
        assert auth.connect_kwargs() == {"password": "x"}

    def test_password_auth_emits_two_warnings(self, sink: RecordingDiagnosticSink) -> None:
        """
        Verify choosing password auth emits exactly two warnings.
        """
        spec = ConnectionSpec(host="example.test", password="x")

        resolve_auth_method(spec, sink)

        assert sink.warnings == list(PASSWORD_AUTH_WARNINGS)
        assert len(sink.warnings) == 2

    def test_password_not_in_repr(self) -> None:
        """Verify the password is hidden from repr()."""
        auth = PasswordAuth(password="hunter2")

        assert "hunter2" not in repr(auth)

    def test_no_credentials_fails(self, sink: RecordingDiagnosticSink) -> None:
        """Verify a spec without key or password is rejected."""
        spec = ConnectionSpec(host="example.test")

        with pytest.raises(AuthMethodError) as exc_info:
            resolve_auth_method(spec, sink)

        assert "No authentication method" in str(exc_info.value)
        assert sink.warnings == []

    def test_empty_strings_count_as_missing(self) -> None:
        """Verify empty credential strings are treated as absent."""
        spec = ConnectionSpec(host="example.test", key="", key_file="", password="")

        with pytest.raises(AuthMethodError):
            resolve_auth_method(spec, RecordingDiagnosticSink())

    def test_default_sink_logs_warnings(self, caplog: pytest.LogCaptureFixture) -> None:
        """Verify warnings go to the audit logger when no sink is passed."""
        spec = ConnectionSpec(host="example.test", password="x")

        with caplog.at_level("WARNING", logger="sshchain.audit"):
            resolve_auth_method(spec)

        messages = [r.getMessage() for r in caplog.records if r.name == "sshchain.audit"]
        assert len(messages) == 2
        assert "password authentication is insecure" in messages[0]
