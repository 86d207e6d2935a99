"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class CreditEngineConfig(BaseSettings):
    """Credit engine configuration"""
    
    # Money defaults
    default_currency: str = "RUB"
    default_schedule_type: str = "annuity"  # annuity or differentiated
    
    # Ledger configuration
    upcoming_days_ahead: int = 7  # Reminder window for due_within
    
    # Rate solver configuration
    rate_precision: int = 4  # Decimal places of the solved annual percent
    rate_solver_max_iterations: int = 200
    rate_solver_tolerance: str = "0.0000000001"  # On the monthly rate
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    class Config:
        env_prefix = "CREDIT_ENGINE_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = CreditEngineConfig()


def get_config() -> CreditEngineConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> CreditEngineConfig:
    """Reload configuration from environment"""
    global config
    config = CreditEngineConfig()
    return config
