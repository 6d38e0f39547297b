import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from storefront_gateway.api.deps import (
    get_config,
    get_session_resolver,
    require_authenticated,
)
from storefront_gateway.config.settings import settings
from storefront_gateway.core.session import (
    AuthSessionResolver,
    HttpSessionProvider,
    UnconfiguredSessionProvider,
)
from storefront_gateway.core.storage import CREDENTIAL_KEY, MemoryStore
from tests.factories import MockUpstream, TestDataFactory


def _bare_app(store=None, http_client=None) -> FastAPI:
    app = FastAPI()
    app.state.config = TestDataFactory.create_app_config()
    app.state.store = store or MemoryStore()
    app.state.http_client = http_client
    return app


def test_get_config_reads_from_app_state():
    app = _bare_app()

    @app.get("/config-check")
    def config_check(config=Depends(get_config)):
        return {"route_count": len(config.routes)}

    with TestClient(app) as client:
        response = client.get("/config-check")

    assert response.status_code == 200
    assert response.json() == {"route_count": 2}


def test_resolver_without_session_url_uses_unconfigured_provider(monkeypatch):
    monkeypatch.setattr(settings, "SESSION_URL", None)
    app = _bare_app()
    seen = {}

    @app.get("/resolver-check")
    def resolver_check(resolver: AuthSessionResolver = Depends(get_session_resolver)):
        seen["provider"] = resolver.session_provider
        return {}

    with TestClient(app) as client:
        client.get("/resolver-check")

    assert isinstance(seen["provider"], UnconfiguredSessionProvider)


def test_resolver_forwards_request_cookies_to_session_endpoint(monkeypatch):
    monkeypatch.setattr(settings, "SESSION_URL", "https://id.example.test/api/auth/session")
    upstream = MockUpstream()
    upstream.configure_response(
        "GET",
        "/api/auth/session",
        httpx.Response(200, json={"user": {"email": "buyer@example.test"}}),
    )
    app = _bare_app(http_client=upstream.client())

    @app.get("/me")
    async def me(resolver: AuthSessionResolver = Depends(get_session_resolver)):
        assert isinstance(resolver.session_provider, HttpSessionProvider)
        return {"authenticated": await resolver.is_authenticated()}

    with TestClient(app) as client:
        response = client.get("/me", headers={"cookie": "next-auth.session-token=abc"})

    assert response.json() == {"authenticated": True}
    sent = upstream.last_request
    assert str(sent.url) == "https://id.example.test/api/auth/session"
    assert sent.headers["cookie"] == "next-auth.session-token=abc"


def test_require_authenticated_redirects_to_login(monkeypatch):
    monkeypatch.setattr(settings, "SESSION_URL", None)
    app = _bare_app()

    @app.get("/orders")
    def orders(resolver: AuthSessionResolver = Depends(require_authenticated)):
        return {"ok": True}

    with TestClient(app) as client:
        response = client.get("/orders", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == settings.LOGIN_PATH


def test_require_authenticated_passes_with_local_credential(monkeypatch):
    monkeypatch.setattr(settings, "SESSION_URL", None)
    store = MemoryStore({CREDENTIAL_KEY: TestDataFactory.create_jwt_token()})
    app = _bare_app(store=store)

    @app.get("/orders")
    def orders(request: Request, resolver: AuthSessionResolver = Depends(require_authenticated)):
        return {"userId": resolver.get_user_id()}

    with TestClient(app) as client:
        response = client.get("/orders")

    assert response.status_code == 200
    assert response.json() == {"userId": 42}
