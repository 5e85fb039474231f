"""
sshchain Unit Tests

Test Modules:
    test_key_parser.py: key file loading, key parsing, SHA256 fingerprints
    test_credentials.py: credential precedence and password warnings
    test_policies.py: pinned and accept-any host key policies
    test_connector.py: direct and tunneled dialing, handshake error mapping
    test_client.py: construction, command execution, SFTP and teardown
    test_config.py: settings, options, models and diagnostic sinks

All tests use in-process fakes of paramiko's client, transport and
channel (see conftest.py); no network access is required.

Usage:
    pytest tests/unit -v
"""
