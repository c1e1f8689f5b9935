"""
ExpenseTerminal CLI Configuration

Handles environment variables for Supabase access.
Configuration is loaded from environment variables or a .env file.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, List

from dotenv import load_dotenv

env_file = Path.home() / ".expenseterminal" / ".env"
if env_file.exists():
    load_dotenv(env_file)
else:
    load_dotenv()  # Try current directory


@dataclass
class SupabaseConfig:
    """Supabase configuration for database access."""
    url: str
    service_role_key: str

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        """Load Supabase config from environment variables."""
        return cls(
            url=os.environ.get("SUPABASE_URL", ""),
            service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
        )


@dataclass
class StripeConfig:
    """Which Stripe products are configured, per mode."""
    starter_product_id: Optional[str]
    plus_product_id: Optional[str]
    starter_product_id_test: Optional[str]
    plus_product_id_test: Optional[str]

    @classmethod
    def from_env(cls) -> "StripeConfig":
        return cls(
            starter_product_id=os.environ.get("STRIPE_STARTER_PRODUCT_ID"),
            plus_product_id=os.environ.get("STRIPE_PLUS_PRODUCT_ID"),
            starter_product_id_test=os.environ.get("STRIPE_STARTER_PRODUCT_ID_TEST"),
            plus_product_id_test=os.environ.get("STRIPE_PLUS_PRODUCT_ID_TEST"),
        )


@dataclass
class Config:
    """Main CLI configuration."""
    supabase: SupabaseConfig
    stripe: StripeConfig

    @classmethod
    def load(cls) -> "Config":
        """Load all configuration from environment."""
        return cls(
            supabase=SupabaseConfig.from_env(),
            stripe=StripeConfig.from_env(),
        )

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of missing fields.

        Stripe products are reported separately as warnings since the CLI
        works without them.
        """
        missing = []

        if not self.supabase.url:
            missing.append("SUPABASE_URL")
        if not self.supabase.service_role_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")

        return missing

    def missing_products(self) -> List[str]:
        names = {
            "STRIPE_STARTER_PRODUCT_ID": self.stripe.starter_product_id,
            "STRIPE_PLUS_PRODUCT_ID": self.stripe.plus_product_id,
            "STRIPE_STARTER_PRODUCT_ID_TEST": self.stripe.starter_product_id_test,
            "STRIPE_PLUS_PRODUCT_ID_TEST": self.stripe.plus_product_id_test,
        }
        return [name for name, value in names.items() if not value]


# Singleton config instance
_config: Optional[Config] = None

def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def get_supabase_client():
    """Create a Supabase client with service role key."""
    from supabase import create_client
    config = get_config()
    return create_client(config.supabase.url, config.supabase.service_role_key)
