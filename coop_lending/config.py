"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import Optional

from .debt import LendingPolicy


class LendingConfig(BaseSettings):
    """Cooperative lending engine configuration"""
    
    # Loan product rules
    default_interest_rate: str = "10"  # Monthly rate in percent for new requests
    rounding_epsilon: str = "0.1"  # Tolerance for "fully paid" comparisons
    penalty_rate: str = "0.10"  # Flat post-term penalty, fraction of principal
    penalty_surcharge_rate: str = "0.10"  # Monthly surcharge, fraction of the flat penalty
    currency: str = "PHP"
    
    # Schedule views
    schedule_lookback_days: int = 30  # How far back the upcoming schedule reaches
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Feature flags
    enable_audit_logging: bool = True
    
    class Config:
        env_prefix = "COOP_"
        env_file = ".env"
        case_sensitive = False
    
    def lending_policy(self) -> LendingPolicy:
        """Build the numeric policy the engine functions consume"""
        return LendingPolicy(
            epsilon=Decimal(self.rounding_epsilon),
            penalty_rate=Decimal(self.penalty_rate),
            penalty_surcharge_rate=Decimal(self.penalty_surcharge_rate)
        )


# Global configuration instance
config = LendingConfig()


def get_config() -> LendingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LendingConfig:
    """Reload configuration from environment"""
    global config
    config = LendingConfig()
    return config
