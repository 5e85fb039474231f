"""
sshchain Configuration
Process-wide defaults read from the environment (SSHCHAIN_*) or a .env file
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SSHChainSettings(BaseSettings):
    """Defaults applied when a caller does not pass an explicit option"""

    # Bounds the dial and the handshake only, never command execution
    connect_timeout: float = Field(default=30.0, description="Dial/handshake timeout in seconds")

    # Some appliances and restricted shells refuse the sftp subsystem
    sftp_disabled: bool = False

    # Originator address announced to the proxy for direct-tcpip channels
    tunnel_origin_host: str = "127.0.0.1"
    tunnel_origin_port: int = 0

    # Chunk size used when pumping command stdin/stdout/stderr
    io_buffer_size: int = 32768

    @field_validator("connect_timeout")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("connect_timeout must be greater than zero")
        return v

    @field_validator("io_buffer_size")
    @classmethod
    def buffer_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("io_buffer_size must be greater than zero")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SSHCHAIN_",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> SSHChainSettings:
    """Get cached settings"""
    return SSHChainSettings()
