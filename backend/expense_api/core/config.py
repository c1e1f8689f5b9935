"""
Core configuration settings for the application.
"""
import json
from typing import List, Optional, Union
from pydantic import Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase Configuration
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_service_role_key: str = Field(default="", description="Supabase service role key")
    supabase_jwt_secret: str = Field(default="", description="Secret used by Supabase Auth to sign access tokens")
    supabase_jwt_audience: str = Field(default="authenticated", description="Expected audience of Supabase access tokens")
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")

    # Stripe Configuration (live keys are used on public hosts, test keys on localhost)
    stripe_secret_key: str = Field(default="", description="Stripe live secret key")
    stripe_secret_key_test: str = Field(default="", description="Stripe test secret key")
    stripe_webhook_secret: Optional[str] = Field(default=None, description="Stripe webhook signing secret")
    stripe_webhook_secret_local: Optional[str] = Field(default=None, description="Webhook secret printed by `stripe listen`")
    stripe_starter_product_id: Optional[str] = Field(default=None, description="Live Stripe product for the Starter plan")
    stripe_plus_product_id: Optional[str] = Field(default=None, description="Live Stripe product for the Plus plan")
    stripe_starter_product_id_test: Optional[str] = Field(default=None, description="Test Stripe product for the Starter plan")
    stripe_plus_product_id_test: Optional[str] = Field(default=None, description="Test Stripe product for the Plus plan")

    # FastAPI Configuration
    api_v1_str: str = Field(default="/api/v1", description="API v1 prefix")
    project_name: str = Field(default="expenseterminal-api", description="Project name")
    environment: str = Field(default="dev", description="Environment (dev, staging, production)")
    debug: bool = Field(default=False, description="Debug mode - set True only for local development")
    app_url: Optional[str] = Field(default=None, description="Public URL of the web app, used for Stripe return URLs")

    # CORS Configuration
    allowed_origins: List[str] = Field(
        default=[
            "https://expenseterminal.com",
            "https://www.expenseterminal.com",
        ],
        description="Allowed CORS origins (production)"
    )

    @field_validator('allowed_origins', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse ALLOWED_ORIGINS from string (JSON) or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except (json.JSONDecodeError, ValueError):
                # If not JSON, split by comma as fallback
                return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @property
    def is_production_environment(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ["production", "prod"]

    @property
    def effective_cors_origins(self) -> List[str]:
        """
        Get CORS origins based on environment.

        - Production: Only production origins
        - Development: Adds localhost origins for local testing
        """
        origins = list(self.allowed_origins)  # Copy to avoid mutation

        if not self.is_production_environment:
            for origin in ["http://localhost:3000", "http://127.0.0.1:3000"]:
                if origin not in origins:
                    origins.append(origin)

        return origins

    @property
    def effective_webhook_secret(self) -> Optional[str]:
        """
        Webhook signing secret for the current environment.

        Outside production the `stripe listen` secret takes precedence so
        forwarded events verify locally.
        """
        if self.is_production_environment:
            return self.stripe_webhook_secret
        return self.stripe_webhook_secret_local or self.stripe_webhook_secret

    # Rate Limiting Configuration
    rate_limit_window_seconds: int = Field(default=60, description="Window for per-plan request limits")

    model_config = ConfigDict(
        env_file=".env.dev",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
