"""
Runtime configuration for the admission harness.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import DEFAULT_CONTROLLER_PORT, DEFAULT_HOST, DEFAULT_KMS_PORT

DEFAULT_LOG_CONFIG = "send-invalid-tx-log.yaml"

_TRUTHY = ("true", "1", "yes")


@dataclass
class ServiceConfig:
    """Configuration for a single gRPC service endpoint."""
    name: str
    host: str
    port: int
    timeout: float = 30.0

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class HarnessConfig:
    """Main configuration for the harness."""
    # Service endpoints, keyed by role ("kms", "controller")
    services: Dict[str, ServiceConfig] = field(default_factory=dict)

    # Logging
    log_config: Optional[str] = DEFAULT_LOG_CONFIG
    verbose: bool = False

    # Timeouts
    connect_timeout: float = 10.0

    @property
    def kms(self) -> ServiceConfig:
        return self.services["kms"]

    @property
    def controller(self) -> ServiceConfig:
        return self.services["controller"]

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables."""
        config = cls()

        request_timeout = float(os.environ.get("REQUEST_TIMEOUT", "30"))

        config.services = {
            "kms": ServiceConfig(
                name="kms",
                host=os.environ.get("KMS_HOST", DEFAULT_HOST),
                port=int(os.environ.get("KMS_PORT", DEFAULT_KMS_PORT)),
                timeout=request_timeout,
            ),
            "controller": ServiceConfig(
                name="controller",
                host=os.environ.get("CONTROLLER_HOST", DEFAULT_HOST),
                port=int(os.environ.get("CONTROLLER_PORT", DEFAULT_CONTROLLER_PORT)),
                timeout=request_timeout,
            ),
        }

        config.connect_timeout = float(os.environ.get("CONNECT_TIMEOUT", "10"))
        config.log_config = os.environ.get("LOG_CONFIG", DEFAULT_LOG_CONFIG)
        config.verbose = os.environ.get("VERBOSE", "").lower() in _TRUTHY

        return config

    def set_timeout(self, timeout: float) -> None:
        """Apply one request timeout to every service."""
        for service in self.services.values():
            service.timeout = timeout
