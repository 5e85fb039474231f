"""
Connection Config Builder

Composes the resolved authentication method, the host key trust decision,
the login user and the connect timeout into the keyword arguments that
paramiko.SSHClient.connect() expects.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .credentials import AuthMethod, resolve_auth_method
from .diagnostics import DiagnosticSink
from .models import ConnectionSpec
from .policies import TrustDecision, create_trust_policy


@dataclass(frozen=True)
class SSHClientConfig:
    """Everything the handshake needs except the stream to run it over."""

    username: str
    auth: AuthMethod
    trust: TrustDecision
    timeout: float

    def connect_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "username": self.username,
            "timeout": self.timeout,
            "banner_timeout": self.timeout,
            "auth_timeout": self.timeout,
            # Only the resolved method is offered to the server
            "allow_agent": False,
            "look_for_keys": False,
        }
        kwargs.update(self.auth.connect_kwargs())
        return kwargs


def build_client_config(
    spec: ConnectionSpec,
    timeout: float,
    diagnostics: Optional[DiagnosticSink] = None,
) -> SSHClientConfig:
    """Resolve credentials and trust for a spec whose defaults are already applied."""
    auth = resolve_auth_method(spec, diagnostics)
    trust = create_trust_policy(spec.fingerprint, diagnostics)
    return SSHClientConfig(username=spec.user, auth=auth, trust=trust, timeout=timeout)


__all__ = ["SSHClientConfig", "build_client_config"]
