"""Configuration management for Origin Proxy."""

from typing import Optional
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the reverse proxy and its upstream client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Server configuration
    HOST: str = Field(default="127.0.0.1", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")

    # Upstream origin
    UPSTREAM_BASE_URL: str = Field(
        default="https://www.roblox.com/",
        description="Fixed upstream origin every request is forwarded to"
    )
    UPSTREAM_TIMEOUT: float = Field(default=30.0, gt=0, description="Per-call upstream deadline in seconds")
    UPSTREAM_HTTP2: bool = Field(default=False, description="Negotiate HTTP/2 with the upstream")
    UPSTREAM_USER_AGENT: Optional[str] = Field(
        default=None,
        description="User-Agent sent upstream when the caller does not send one"
    )
    MAX_BODY_SIZE: int = Field(default=5 * 1024 * 1024, ge=0, description="Request body ceiling in bytes")

    # Connection pool
    POOL_MAX_IDLE_CONNECTIONS: int = Field(default=10, ge=0, description="Idle keep-alive connections kept per host")
    POOL_IDLE_TIMEOUT: float = Field(default=15.0, gt=0, description="Idle connection expiry in seconds")
    POOL_MAX_CONNECTIONS: int = Field(default=100, ge=1, description="Total upstream connection cap")

    # Header policy
    REQUEST_DENY_HEADERS: list[str] = Field(
        default_factory=list,
        description="Extra header names never forwarded upstream"
    )
    RESPONSE_DENY_HEADERS: list[str] = Field(
        default_factory=list,
        description="Extra header names never returned to the caller"
    )

    # Local endpoints
    HEALTH_PATH: str = Field(default="/_proxy/health", description="Local health endpoint, not proxied")

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()

    @field_validator('UPSTREAM_BASE_URL')
    @classmethod
    def validate_upstream_base_url(cls, v):
        """Upstream must be an absolute http(s) URL without query or fragment"""
        parsed = urlparse(v)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValueError(f"Upstream base URL must be an absolute http(s) URL, got {v!r}")
        if parsed.query or parsed.fragment:
            raise ValueError("Upstream base URL must not carry a query string or fragment")
        return v

    @field_validator('HEALTH_PATH')
    @classmethod
    def validate_health_path(cls, v):
        if not v.startswith('/'):
            raise ValueError("Health path must start with '/'")
        return v

    def header_policy(self):
        """Create the HeaderPolicy described by these settings"""
        from origin_proxy.core.headers import HeaderPolicy

        return HeaderPolicy(
            request_deny=self.REQUEST_DENY_HEADERS,
            response_deny=self.RESPONSE_DENY_HEADERS
        )

    def client_config(self):
        """Create the UpstreamClientConfig described by these settings"""
        from origin_proxy.core.client import UpstreamClientConfig

        return UpstreamClientConfig(
            timeout=self.UPSTREAM_TIMEOUT,
            max_body_size=self.MAX_BODY_SIZE,
            max_idle_connections=self.POOL_MAX_IDLE_CONNECTIONS,
            idle_timeout=self.POOL_IDLE_TIMEOUT,
            max_connections=self.POOL_MAX_CONNECTIONS,
            http2=self.UPSTREAM_HTTP2,
            user_agent=self.UPSTREAM_USER_AGENT
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return settings
