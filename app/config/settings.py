from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for auth admin calls (create user, get user by id)
    supabase_jwt_secret: Optional[str] = None  # Signs and verifies session tokens

    # LINE Login
    line_channel_id: Optional[str] = None
    line_channel_secret: Optional[str] = None
    line_redirect_uri: str = "http://localhost:3000/"
    line_code_verifier: Optional[str] = None  # PKCE verifier, must match the code_challenge sent at login
    line_token_url: str = "https://api.line.me/oauth2/v2.1/token"
    line_profile_url: str = "https://api.line.me/v2/profile"
    line_jwks_url: str = "https://api.line.me/oauth2/v2.1/certs"
    line_issuer: str = "https://access.line.me"
    line_http_timeout: float = 10.0

    # Sessions
    product_name: str = "sharetrust"
    session_ttl_days: int = 7
    refresh_token_ttl_days: int = 30

    # Background jobs
    group_expiry_sweep_enabled: bool = False
    group_expiry_sweep_interval: int = 300  # seconds

    # App
    app_name: str = "sharetrust-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_days * 24 * 60 * 60

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
