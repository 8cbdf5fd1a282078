from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings


_BUNDLED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "phones.csv"


class Settings(BaseSettings):
    # Database
    db_name: str = "reprice"
    db_user: str = "reprice"
    db_password: str = "CHANGE_ME"
    db_host: str = "db"
    db_port: int = 5432
    db_ssl: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 10
    db_statement_timeout_ms: int = 30000

    # CORS
    cors_allowed_origins: str = "http://localhost:5173"

    # JWT
    jwt_secret_key: str = "CHANGE_ME"
    jwt_expire_days: int = 7

    # Orders
    serviceable_pincode_prefixes: str = ""

    # Client endpoints
    backend_api_url: str = "https://reprice-backend-a5mp.onrender.com/api"
    ai_api_url: str = "https://reprice-ml3.onrender.com"
    ai_fallback_url: str = "https://reprice-ml3.onrender.com"
    catalog_source: str = str(_BUNDLED_CATALOG)
    client_state_path: str = ".reprice-state.json"

    # App
    debug: bool = False

    @property
    def database_url(self) -> str:
        base = (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )
        return f"{base}?ssl=require" if self.db_ssl else base

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def serviceable_prefixes_list(self) -> list[str]:
        return [p.strip() for p in self.serviceable_pincode_prefixes.split(",") if p.strip()]

    @property
    def catalog_ttl_seconds(self) -> float:
        # Short window in development so CSV edits show up quickly.
        return 30.0 if self.debug else 24 * 60 * 60.0

    model_config = {"env_file": ".env", "extra": "ignore"}

    def validate_secrets(self) -> None:
        """Raise if production-critical secrets are still defaults."""
        defaults = {"CHANGE_ME"}
        if self.jwt_secret_key in defaults:
            raise ValueError("jwt_secret_key must be changed from default")
        if len(self.jwt_secret_key) < 32:
            raise ValueError(
                "jwt_secret_key must be at least 32 characters (256 bits) per RFC 7518 Section 3.2"
            )
        for url_name in ("backend_api_url", "ai_api_url", "ai_fallback_url"):
            url_val = getattr(self, url_name)
            parsed = urlparse(url_val)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"{url_name} must be a valid http(s) URL")
        if self.db_password in defaults:
            raise ValueError("db_password must be changed from default")


settings = Settings()
