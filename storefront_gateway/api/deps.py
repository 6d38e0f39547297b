from fastapi import Depends, HTTPException, Request, status

from storefront_gateway.config.settings import settings
from storefront_gateway.core.forwarder import RequestForwarder
from storefront_gateway.core.health import HealthMonitor
from storefront_gateway.core.session import (
    AuthSessionResolver,
    HttpSessionProvider,
    UnconfiguredSessionProvider,
)
from storefront_gateway.core.storage import KeyValueStore
from storefront_gateway.models.config_models import AppConfig


def get_config(request: Request) -> AppConfig:
    """
    Get the application configuration from app state.

    Configuration is loaded once at startup and stored in app.state,
    eliminating the need for file I/O on every request.

    Args:
        request: FastAPI request object containing app state

    Returns:
        AppConfig: The application configuration
    """
    return request.app.state.config


def get_forwarder(request: Request) -> RequestForwarder:
    return request.app.state.forwarder


def get_store(request: Request) -> KeyValueStore:
    return request.app.state.store


def get_health_monitor(request: Request) -> HealthMonitor:
    return request.app.state.health_monitor


def get_session_resolver(
    request: Request,
    store: KeyValueStore = Depends(get_store),
) -> AuthSessionResolver:
    """
    Build a resolver for the current request.

    The federated lookup carries the caller's cookies, so the provider is
    bound per request; the local store is shared.
    """
    if settings.SESSION_URL:
        provider = HttpSessionProvider(
            request.app.state.http_client,
            settings.SESSION_URL,
            cookies=dict(request.cookies),
            timeout=settings.SESSION_TIMEOUT,
        )
    else:
        provider = UnconfiguredSessionProvider()
    return AuthSessionResolver(store, provider, session_timeout=settings.SESSION_TIMEOUT)


async def require_authenticated(
    resolver: AuthSessionResolver = Depends(get_session_resolver),
) -> AuthSessionResolver:
    """
    Dependency for protected views: anonymous callers are redirected to login.
    """
    if not await resolver.is_authenticated():
        raise HTTPException(
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            detail="Authentication required",
            headers={"Location": settings.LOGIN_PATH},
        )
    return resolver
