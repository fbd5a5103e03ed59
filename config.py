"""
Configuration loaded from environment variables. Fail-fast on invalid values.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Config(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True, "extra": "ignore"}

    # Credentials (required for API calls; the offline `sign` command only
    # needs them to produce headers, not to reach the network)
    futuur_public_key: str = Field(default="", description="Futuur API public key")
    futuur_private_key: str = Field(default="", description="Futuur API private key (HMAC secret)")

    # API endpoint
    futuur_host: str = "https://api.futuur.com/api/v1"
    # Per-request timeout for the transport; signing is not affected
    futuur_timeout_ms: int = Field(default=10_000, gt=0)

    log_level: str = "INFO"


def has_credentials(cfg: Config) -> bool:
    """Both halves of the key pair are present."""
    return bool(cfg.futuur_public_key and cfg.futuur_private_key)


def load_config() -> Config:
    """Load and validate config from environment. Raises on invalid fields."""
    return Config()
