"""
SSH Host Key Policies

Host key verification for connections made by sshchain. No known_hosts
database is consulted: every server key reaches paramiko's "missing host
key" hook, and the policy installed there decides.

Available Policies:
- PinnedFingerprintPolicy: Accept only a key with the configured SHA256
  fingerprint (case-sensitive, exact match)
- AcceptAnyHostKeyPolicy: Accept every key. Selecting it is reported to
  the diagnostic sink because it offers no protection against a
  person-in-the-middle.

Usage:
    decision = create_trust_policy(spec.fingerprint, sink)
    client.set_missing_host_key_policy(decision.policy)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import paramiko
from paramiko import SSHClient

from .diagnostics import DiagnosticSink, default_sink
from .exceptions import HostIdentityMismatch
from .key_parser import get_key_fingerprint_sha256
from .models import TrustMode

logger = logging.getLogger(__name__)

ACCEPT_ANY_WARNINGS = (
    "Skipping host key verification is insecure!",
    "This allows for person-in-the-middle attacks, please consider using fingerprint verification!",
)


class PinnedFingerprintPolicy(paramiko.MissingHostKeyPolicy):
    """
    Verify the server key against a pinned fingerprint.

    Attributes:
        fingerprint: Expected fingerprint ("SHA256:<base64>")
        observed: Fingerprint seen during the last handshake, if any
    """

    def __init__(self, fingerprint: str) -> None:
        self.fingerprint = fingerprint
        self.observed: Optional[str] = None

    def missing_host_key(self, client: SSHClient, hostname: str, key: paramiko.PKey) -> None:
        """
        Accept the key if its fingerprint equals the pinned one.

        Raises:
            HostIdentityMismatch: The fingerprints differ
        """
        observed = get_key_fingerprint_sha256(key)
        self.observed = observed

        if observed != self.fingerprint:
            logger.error(
                "SSH_HOST_KEY_MISMATCH: %s presented %s (type: %s), expected %s",
                hostname,
                observed,
                key.get_name(),
                self.fingerprint,
            )
            raise HostIdentityMismatch(expected=self.fingerprint, observed=observed, hostname=hostname)

        logger.debug("Host key for %s matches pinned fingerprint", hostname)


class AcceptAnyHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """
    Accept whatever key the server presents.

    The fingerprint is still recorded so callers can audit it afterwards.
    """

    def __init__(self) -> None:
        self.observed: Optional[str] = None

    def missing_host_key(self, client: SSHClient, hostname: str, key: paramiko.PKey) -> None:
        self.observed = get_key_fingerprint_sha256(key)
        logger.info(
            "Accepting unverified host key for %s (type: %s, fingerprint: %s)",
            hostname,
            key.get_name(),
            self.observed,
        )


@dataclass(frozen=True)
class TrustDecision:
    """
    Selected host key trust mode and its paramiko policy.

    Attributes:
        mode: PINNED or ACCEPT_ANY
        policy: Policy to install on the paramiko client
        fingerprint: The pinned fingerprint (PINNED only)
    """

    mode: TrustMode
    policy: paramiko.MissingHostKeyPolicy
    fingerprint: Optional[str] = None

    @property
    def observed_fingerprint(self) -> Optional[str]:
        return getattr(self.policy, "observed", None)


def create_trust_policy(fingerprint: Optional[str], diagnostics: Optional[DiagnosticSink] = None) -> TrustDecision:
    """
    Select the host key policy for an optional pinned fingerprint.

    Args:
        fingerprint: Pinned fingerprint, or None/"" to accept any key
        diagnostics: Sink receiving the warnings for the accept-any choice

    Returns:
        TrustDecision carrying the policy to install
    """
    if fingerprint:
        return TrustDecision(
            mode=TrustMode.PINNED,
            policy=PinnedFingerprintPolicy(fingerprint),
            fingerprint=fingerprint,
        )

    sink = diagnostics or default_sink()
    for message in ACCEPT_ANY_WARNINGS:
        sink.warning(message)
    return TrustDecision(mode=TrustMode.ACCEPT_ANY, policy=AcceptAnyHostKeyPolicy())


__all__ = [
    "ACCEPT_ANY_WARNINGS",
    "PinnedFingerprintPolicy",
    "AcceptAnyHostKeyPolicy",
    "TrustDecision",
    "create_trust_policy",
]
