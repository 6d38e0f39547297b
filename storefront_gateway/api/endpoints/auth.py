import logging
from typing import Iterable

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from storefront_gateway.api.deps import get_forwarder
from storefront_gateway.api.endpoints.proxy import read_forwardable_body
from storefront_gateway.core.forwarder import FixedPathForwarder, RequestForwarder
from storefront_gateway.models.config_models import FixedRoute

logger = logging.getLogger(__name__)


def _fixed_route_handler(route: FixedRoute):
    async def forward_fixed_route(
        request: Request,
        forwarder: RequestForwarder = Depends(get_forwarder),
    ) -> Response:
        fixed = FixedPathForwarder(forwarder, route.upstream_path)
        return await fixed.forward(
            request.method,
            query_string=request.url.query,
            headers=request.headers.raw,
            body=await read_forwardable_body(request),
        )

    return forward_fixed_route


def build_fixed_routes_router(routes: Iterable[FixedRoute]) -> APIRouter:
    """
    Router with one endpoint per configured fixed route.

    Each endpoint hides the upstream layout from callers, e.g. the login
    form posts to /api/auth/login regardless of where the upstream keeps it.
    """
    router = APIRouter()
    for route in routes:
        router.add_api_route(
            route.endpoint,
            _fixed_route_handler(route),
            methods=route.methods,
            name=f"forward:{route.endpoint}",
        )
        logger.debug("Fixed route %s %s -> %s", route.methods, route.endpoint, route.upstream_path)
    return router
