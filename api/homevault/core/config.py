import sys

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ─── App ──────────────────────────────────────
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_log_level: str = "info"

    # ─── Supabase ─────────────────────────────────
    supabase_url: str = "CHANGE_ME"
    supabase_anon_key: str = "CHANGE_ME"
    # Only the operator reconcile script uses this; the API never does
    supabase_service_role_key: str = ""
    storage_bucket: str = "documents"

    # ─── Session cookies ──────────────────────────
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7

    # ─── Redis ────────────────────────────────────
    redis_url: str = "redis://redis:6379/0"

    # ─── Rate limiting ────────────────────────────
    rate_limit_storage_uri: str = "memory://"

    # ─── Uploads ──────────────────────────────────
    max_upload_bytes: int = 10 * 1024 * 1024

    # ─── Domain ───────────────────────────────────
    domain: str = "localhost"

    # Look for .env in current dir (Docker) or parent dir (local dev from api/)
    model_config = {"env_file": [".env", "../.env"], "extra": "ignore"}


def _validate_settings(s: Settings) -> None:
    """Abort startup if the backend connection is not configured."""
    errors: list[str] = []

    if s.supabase_url in ("CHANGE_ME", ""):
        errors.append("SUPABASE_URL is not set or uses the default placeholder")
    elif not s.supabase_url.startswith(("http://", "https://")):
        errors.append("SUPABASE_URL must be an http(s) URL")

    if s.supabase_anon_key in ("CHANGE_ME", ""):
        errors.append("SUPABASE_ANON_KEY is not set or uses the default placeholder")

    if s.storage_bucket.strip() == "":
        errors.append("STORAGE_BUCKET must not be empty")

    if errors:
        if s.environment == "production":
            # Hard fail in production
            print("FATAL: Invalid backend configuration:", file=sys.stderr)
            for e in errors:
                print(f"  - {e}", file=sys.stderr)
            sys.exit(1)
        else:
            import logging
            log = logging.getLogger("homevault.config")
            for e in errors:
                log.warning("CONFIG WARNING: %s", e)


settings = Settings()
_validate_settings(settings)
