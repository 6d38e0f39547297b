import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import yaml
from fastapi import FastAPI
from pydantic import ValidationError

from storefront_gateway.api.api import api_router
from storefront_gateway.api.endpoints.auth import build_fixed_routes_router
from storefront_gateway.config.settings import settings
from storefront_gateway.core.forwarder import RequestForwarder
from storefront_gateway.core.health import HealthMonitor, HttpProbe
from storefront_gateway.core.storage import JsonFileStore, KeyValueStore
from storefront_gateway.models.config_models import (
    AppConfig,
    UpstreamTarget,
    describe_validation_errors,
)

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
RESOURCE_DIR = PACKAGE_DIR / "resources"
DEFAULT_CONFIG_FILE = RESOURCE_DIR / "default_config.yml"


class ConfigLoadError(RuntimeError):
    """Routing/health configuration could not be read or validated.

    Attributes:
        config_path: File that was being loaded
        reason: What went wrong with it
    """

    def __init__(self, config_path: Path, reason: str) -> None:
        super().__init__(f"Configuration error in '{config_path}': {reason}")
        self.config_path = config_path
        self.reason = reason


def _config_path_from_env() -> Path:
    configured_path = os.getenv("CONFIG_FILE")
    if not configured_path:
        return DEFAULT_CONFIG_FILE
    return Path(configured_path).expanduser().resolve()


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigLoadError(config_path, "file not found. Set CONFIG_FILE to a valid YAML file path.") from e
    except PermissionError as e:
        raise ConfigLoadError(config_path, "file cannot be read due to permissions.") from e

    try:
        return yaml.safe_load(raw) or {}
    except yaml.YAMLError as e:
        raise ConfigLoadError(config_path, f"invalid YAML syntax ({e}).") from e


def _load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load the fixed routes and health tuning, failing fast on any problem."""
    config_path = config_path or _config_path_from_env()
    try:
        config = AppConfig.from_dict(_read_yaml(config_path))
    except ValidationError as e:
        raise ConfigLoadError(config_path, f"validation failed ({describe_validation_errors(e)}).") from e
    except ConfigLoadError as e:
        logger.error("%s", e)
        raise

    logger.info("Configuration loaded from %s (%d fixed routes)", config_path, len(config.routes))
    return config


def _create_http_client() -> httpx.AsyncClient:
    """Shared upstream client with connection pooling and HTTP/2."""
    return httpx.AsyncClient(
        timeout=settings.UPSTREAM_TIMEOUT,
        limits=httpx.Limits(
            max_keepalive_connections=100,
            max_connections=1000,
            keepalive_expiry=60.0,
        ),
        http2=True,
        follow_redirects=False,
    )


def create_application(
    config: Optional[AppConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    store: Optional[KeyValueStore] = None,
    target: Optional[UpstreamTarget] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings.configure_logging()
    if config is None:
        config = _load_config()
    if store is None:
        store = JsonFileStore(settings.STATE_FILE)
    if target is None:
        target = UpstreamTarget(base_url=settings.BACKEND_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle events."""
        logger.info("Starting up Storefront Gateway (upstream %s)...", target.base_url)

        client = http_client or _create_http_client()
        app.state.config = config
        app.state.store = store
        app.state.http_client = client
        app.state.forwarder = RequestForwarder(target, client)
        app.state.health_monitor = HealthMonitor(
            probe=HttpProbe(
                client,
                target.build_url(config.health.probe_path),
                timeout=config.health.timeout,
            ),
            store=store,
            failure_threshold=config.health.failure_threshold,
            dismiss_cooldown=config.health.dismiss_cooldown,
            startup_delay=config.health.startup_delay,
            interval=config.health.interval,
            probe_timeout=config.health.timeout,
        )
        if config.health.enabled:
            app.state.health_monitor.start()

        logger.info("Configuration and HTTP client initialized")

        yield

        logger.info("Shutting down Storefront Gateway...")
        await app.state.health_monitor.stop()
        if http_client is None:
            await client.aclose()
            logger.info("HTTP client closed successfully")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        lifespan=lifespan,
    )

    app.include_router(build_fixed_routes_router(config.routes))
    app.include_router(api_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "healthy"}

    return app


def run() -> None:
    """CLI entrypoint for running the gateway."""
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = os.getenv("RELOAD", "").lower() in {"1", "true", "yes"}
    uvicorn.run("storefront_gateway.main:app", host=host, port=port, reload=reload_enabled)


app = create_application()


if __name__ == "__main__":
    run()
