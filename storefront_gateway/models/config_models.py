import logging
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


class UpstreamTarget(BaseModel):
    """Upstream origin every forwarder talks to. Fixed for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    base_url: str

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an absolute http(s) origin")
        return value.rstrip("/")

    def build_url(self, path: str | Iterable[str], query_string: str = "") -> str:
        """
        Concatenate the origin, the inbound path and the raw query string.

        Path segments are joined with '/' as given; nothing is re-escaped.
        """
        if isinstance(path, str):
            joined = path.lstrip("/")
        else:
            joined = "/".join(path)
        url = f"{self.base_url}/{joined}"
        if query_string:
            url = f"{url}?{query_string.lstrip('?')}"
        return url


class FixedRoute(BaseModel):
    endpoint: str
    upstream_path: str
    methods: List[str] = Field(default_factory=lambda: ["POST"])

    @field_validator("methods")
    @classmethod
    def _normalize_methods(cls, value: List[str]) -> List[str]:
        methods = [method.upper() for method in value]
        unknown = [method for method in methods if method not in SUPPORTED_METHODS]
        if unknown:
            raise ValueError(f"unsupported methods: {', '.join(unknown)}")
        if not methods:
            raise ValueError("at least one method is required")
        return methods

    @field_validator("endpoint", "upstream_path")
    @classmethod
    def _require_leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("paths must start with '/'")
        return value


class HealthConfig(BaseModel):
    enabled: bool = True
    probe_path: str = "/api/products?pageSize=1"
    startup_delay: float = Field(default=2.0, ge=0)
    interval: float = Field(default=30.0, gt=0)
    timeout: float = Field(default=5.0, gt=0)
    failure_threshold: int = Field(default=3, ge=1)
    dismiss_cooldown: float = Field(default=300.0, ge=0)


def describe_validation_errors(error: ValidationError) -> str:
    """One-line summary of a validation failure, e.g. `health.interval: Input should be greater than 0`."""
    return "; ".join(
        f"{'.'.join(str(loc) for loc in err.get('loc', ())) or '<root>'}: {err.get('msg', 'invalid value')}"
        for err in error.errors()
    )


class AppConfig(BaseModel):
    routes: List[FixedRoute] = Field(default_factory=list)
    health: HealthConfig = Field(default_factory=HealthConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AppConfig':
        """
        Create AppConfig from a dictionary, typically loaded from YAML.

        Args:
            config_dict: Configuration dictionary

        Returns:
            AppConfig instance with parsed and validated configuration

        Raises:
            ValidationError: If the configuration data is invalid
        """
        try:
            return cls.model_validate(config_dict)
        except ValidationError as e:
            logger.error("Configuration validation failed: %s", describe_validation_errors(e))
            raise
