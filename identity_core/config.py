"""Configuration module for the TravelExplore identity core."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# Default storage path for account records
DEFAULT_ACCOUNTS_FILE = Path(__file__).parent.parent / "data" / "accounts.json"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class TokenConfig:
    """Bearer token signing configuration."""
    # None means "generate a per-process secret at startup"
    secret_key: Optional[str] = field(default_factory=lambda: os.getenv("JWT_SECRET_KEY") or None)
    ttl_seconds: int = field(default_factory=lambda: int(os.getenv("JWT_TTL_SECONDS", "86400")))
    # Clock-skew grace applied to the expiry check
    leeway_seconds: int = field(default_factory=lambda: int(os.getenv("JWT_LEEWAY_SECONDS", "30")))


@dataclass
class SessionConfig:
    """Server-side session configuration."""
    ttl_seconds: int = field(default_factory=lambda: int(os.getenv("SESSION_TTL_SECONDS", "86400")))
    cookie_name: str = field(default_factory=lambda: os.getenv("SESSION_COOKIE_NAME", "sid"))
    cookie_secure: bool = field(default_factory=lambda: _env_bool("SESSION_COOKIE_SECURE", "false"))


@dataclass
class PasswordConfig:
    """Password hashing and policy configuration."""
    bcrypt_rounds: int = field(default_factory=lambda: int(os.getenv("BCRYPT_ROUNDS", "12")))
    min_length: int = field(default_factory=lambda: int(os.getenv("PASSWORD_MIN_LENGTH", "6")))


@dataclass
class GoogleOAuthConfig:
    """Google OAuth client configuration."""
    client_id: str = field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_ID", ""))
    client_secret: str = field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_SECRET", ""))
    callback_url: str = field(default_factory=lambda: os.getenv("GOOGLE_CALLBACK_URL", "http://localhost:3000/api/v1/auth/google/callback"))
    scopes: List[str] = field(default_factory=lambda: os.getenv("GOOGLE_SCOPES", "openid,email,profile").split(","))
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv("OAUTH_TIMEOUT_SECONDS", "10")))
    state_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("OAUTH_STATE_TTL_SECONDS", "600")))
    state_cookie_name: str = field(default_factory=lambda: os.getenv("OAUTH_STATE_COOKIE_NAME", "oauth_state"))

    auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    userinfo_url: str = "https://www.googleapis.com/oauth2/v2/userinfo"

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class Config:
    """Main configuration container."""
    token: TokenConfig = field(default_factory=TokenConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    password: PasswordConfig = field(default_factory=PasswordConfig)
    google: GoogleOAuthConfig = field(default_factory=GoogleOAuthConfig)

    accounts_file: Path = field(default_factory=lambda: Path(os.getenv("ACCOUNTS_FILE", str(DEFAULT_ACCOUNTS_FILE))))
    cors_origin: str = field(default_factory=lambda: os.getenv("CORS_ORIGIN", "http://localhost:3000"))


def load_config() -> Config:
    """Load configuration from environment variables."""
    return Config()
