#!/usr/bin/env python3
"""Configuration for the pricing engine

Configuration hierarchy:
- pricing_config: Money rounding, tax combination and billing defaults
- logging_config: Logging configuration
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig, setup_logging
from .pricing_config import PricingConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = PricingConfig.from_env()

def get_settings() -> PricingConfig:
    """Get global settings instance"""
    return settings

def reload_settings() -> PricingConfig:
    """Reload settings from environment"""
    global settings
    settings = PricingConfig.from_env()
    return settings

__all__ = [
    'PricingConfig',
    'LoggingConfig',
    'get_settings',
    'reload_settings',
    'settings',
    'setup_logging',
]
