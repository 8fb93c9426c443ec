import os
from pydantic import BaseModel


class Settings(BaseModel):
    api_key: str = os.getenv("API_KEY", "change-me")

    feedback_api_base: str = os.getenv("FEEDBACK_API_BASE", "http://localhost:8003/v1")
    body_api_base: str = os.getenv("BODY_API_BASE", "http://localhost:8002/api/v1")

    body_api_username: str = os.getenv("BODY_API_USERNAME", "testuser")
    body_api_password: str = os.getenv("BODY_API_PASSWORD", "testpassword")

    # Size charts (built-in charts when no path is given)
    size_charts_path: str | None = os.getenv("SIZE_CHARTS_PATH")
    fallback_category: str = os.getenv("FALLBACK_CATEGORY", "tops")

    # Population-average defaults
    use_population_defaults: bool = os.getenv("USE_POPULATION_DEFAULTS", "1") == "1"
    default_fill_policy: str = os.getenv("DEFAULT_FILL_POLICY", "when_unusable")

    soft_tolerance_cm: float = float(os.getenv("SOFT_TOLERANCE_CM", "5.0"))
    fit_guarantee_threshold: float = float(os.getenv("FIT_GUARANTEE_THRESHOLD", "80"))

    # JWT
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_audience: str | None = os.getenv("JWT_AUDIENCE")
    jwt_issuer: str | None = os.getenv("JWT_ISSUER")
    jwt_ttl_seconds: int = int(os.getenv("JWT_TTL_SECONDS", "3600"))

    # Rate limit (token bucket)
    rate_limit_per_min: int = int(os.getenv("RATE_LIMIT_PER_MIN", "60"))
    rate_limit_burst: int = int(os.getenv("RATE_LIMIT_BURST", "30"))


settings = Settings()
