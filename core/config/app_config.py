#!/usr/bin/env python3
"""Denim operations main configuration

Combines all sub-configs for the allocation core.
"""
import os
from dataclasses import dataclass, field

from .allocation_config import AllocationConfig
from .infra_config import InfraConfig
from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"


@dataclass
class DenimOpsConfig:
    """Main configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infrastructure: InfraConfig = field(default_factory=InfraConfig)
    allocation: AllocationConfig = field(default_factory=AllocationConfig)

    @classmethod
    def from_env(cls) -> 'DenimOpsConfig':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),

            # Load sub-configs
            logging=LoggingConfig.from_env(),
            infrastructure=InfraConfig.from_env(),
            allocation=AllocationConfig.from_env(),
        )
