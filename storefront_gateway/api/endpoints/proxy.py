from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from storefront_gateway.api.deps import get_forwarder
from storefront_gateway.core.forwarder import BODYLESS_METHODS, RequestForwarder

PROXY_PREFIX = "/api/proxy/"
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter()


async def read_forwardable_body(request: Request) -> bytes | None:
    """Inbound body for body-carrying verbs; GET/HEAD bodies are never read."""
    if request.method.upper() in BODYLESS_METHODS:
        return None
    return await request.body()


def raw_upstream_path(request: Request, decoded_path: str) -> str:
    """The inbound path after /api/proxy/, exactly as the client sent it."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        raw = raw_path.decode("latin-1").split("?", 1)[0]
        if raw.startswith(PROXY_PREFIX):
            return raw[len(PROXY_PREFIX):]
    return decoded_path


@router.api_route("/proxy/{path:path}", methods=PROXY_METHODS)
async def proxy_request(
    path: str,
    request: Request,
    forwarder: RequestForwarder = Depends(get_forwarder),
) -> Response:
    """Relay any call under /api/proxy/ to the same path on the upstream."""
    return await forwarder.forward(
        request.method,
        raw_upstream_path(request, path),
        query_string=request.url.query,
        headers=request.headers.raw,
        body=await read_forwardable_body(request),
    )
