#!/usr/bin/env python3
"""Modular configuration system for denim operations

Configuration hierarchy:
- infra_config: PostgreSQL store and NATS event bus
- allocation_config: SKU conversion, priorities, allocation retries, locations
- logging_config: Logging configuration
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .allocation_config import AllocationConfig
from .app_config import DenimOpsConfig

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
settings = DenimOpsConfig.from_env()

def get_settings() -> DenimOpsConfig:
    """Get global settings instance"""
    return settings

def reload_settings() -> DenimOpsConfig:
    """Reload settings from environment"""
    global settings
    settings = DenimOpsConfig.from_env()
    return settings

__all__ = [
    # Main config
    'DenimOpsConfig',
    'get_settings',
    'reload_settings',
    'settings',
    # Sub-configs
    'LoggingConfig',
    'InfraConfig',
    'AllocationConfig',
]
