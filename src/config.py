"""
Configuration module for the Initializer Controller.

Loads configuration from environment variables. Defaults target an
in-cluster deployment using the pod's service account.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from models import INITIALIZER_CONTROLLER_API_VERSION, INITIALIZER_CONTROLLER_RESOURCE

SERVICE_ACCOUNT_DIR = "/var/run/secrets/kubernetes.io/serviceaccount"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _default_api_server() -> str:
    host = os.getenv("KUBERNETES_SERVICE_HOST")
    port = os.getenv("KUBERNETES_SERVICE_PORT", "443")
    if host:
        if ":" in host:
            host = f"[{host}]"
        return f"https://{host}:{port}"
    return "https://kubernetes.default.svc"


@dataclass
class KubernetesConfig:
    """Connection settings for the Kubernetes API server."""

    api_server: str = "https://kubernetes.default.svc"
    token_file: Optional[str] = f"{SERVICE_ACCOUNT_DIR}/token"
    ca_file: Optional[str] = f"{SERVICE_ACCOUNT_DIR}/ca.crt"
    verify_ssl: bool = True
    request_timeout: int = 30  # seconds
    token: str = field(default="", repr=False)  # Never log token

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            api_server=os.getenv("KUBE_API_SERVER") or _default_api_server(),
            token_file=os.getenv("KUBE_TOKEN_FILE", f"{SERVICE_ACCOUNT_DIR}/token"),
            ca_file=os.getenv("KUBE_CA_FILE", f"{SERVICE_ACCOUNT_DIR}/ca.crt"),
            verify_ssl=_env_bool("KUBE_VERIFY_SSL", "true"),
            request_timeout=int(os.getenv("KUBE_REQUEST_TIMEOUT", "30")),
            token=os.getenv("KUBE_TOKEN", ""),
        )

    def read_token(self) -> str:
        """Return the bearer token, reading the token file if needed."""
        if self.token:
            return self.token
        if self.token_file and os.path.exists(self.token_file):
            with open(self.token_file, "r") as f:
                return f.read().strip()
        return ""


@dataclass
class ControllerConfig:
    """Reconciliation loop configuration."""

    sync_interval: int = 30  # seconds between passes
    hook_timeout: int = 10  # seconds per init hook call
    config_api_version: str = INITIALIZER_CONTROLLER_API_VERSION
    config_resource: str = INITIALIZER_CONTROLLER_RESOURCE

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            sync_interval=int(os.getenv("SYNC_INTERVAL", "30")),
            hook_timeout=int(os.getenv("HOOK_TIMEOUT", "10")),
            config_api_version=os.getenv(
                "INITIALIZER_CONTROLLER_API_VERSION",
                INITIALIZER_CONTROLLER_API_VERSION,
            ),
            config_resource=os.getenv(
                "INITIALIZER_CONTROLLER_RESOURCE", INITIALIZER_CONTROLLER_RESOURCE
            ),
        )


@dataclass
class APIConfig:
    """Status API server configuration."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            enabled=_env_bool("STATUS_API_ENABLED", "true"),
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8080")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@dataclass
class Config:
    """Main configuration object."""

    kubernetes: KubernetesConfig
    controller: ControllerConfig
    api: APIConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            kubernetes=KubernetesConfig.from_env(),
            controller=ControllerConfig.from_env(),
            api=APIConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            kubernetes=KubernetesConfig(),
            controller=ControllerConfig(),
            api=APIConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
