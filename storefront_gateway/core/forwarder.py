import logging
from typing import AsyncIterator, Iterable, Optional, Tuple, Union

import httpx
from starlette.responses import JSONResponse, Response, StreamingResponse

from storefront_gateway.core.exceptions import UpstreamUnreachable
from storefront_gateway.models.config_models import UpstreamTarget
from storefront_gateway.models.schemas import UpstreamErrorPayload

logger = logging.getLogger(__name__)

RawHeaders = Union[httpx.Headers, Iterable[Tuple[Union[str, bytes], Union[str, bytes]]], dict]
RequestBody = Union[bytes, AsyncIterator[bytes], None]

BODYLESS_METHODS = frozenset({"GET", "HEAD"})
DEFAULT_CONTENT_TYPE = "application/json"

# The local transport recomputes length; host comes from the target URL.
REQUEST_STRIP_HEADERS = frozenset({"host", "connection", "content-length"})
# The relayed body is already decoded and re-framed, so these would lie.
RESPONSE_STRIP_HEADERS = frozenset({
    "content-encoding",
    "transfer-encoding",
    "content-length",
    "connection",
})


def prepare_request_headers(headers: Optional[RawHeaders], method: str) -> httpx.Headers:
    """Copy inbound headers for the upstream call, applying header hygiene."""
    prepared = httpx.Headers(headers or {})
    for name in REQUEST_STRIP_HEADERS:
        prepared.pop(name, None)

    if method not in BODYLESS_METHODS and "content-type" not in prepared:
        prepared["content-type"] = DEFAULT_CONTENT_TYPE
    return prepared


def relay_headers(upstream_headers: httpx.Headers) -> list[tuple[bytes, bytes]]:
    """Upstream response headers minus framing/encoding headers, repeated keys kept."""
    return [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in upstream_headers.multi_items()
        if name.lower() not in RESPONSE_STRIP_HEADERS
    ]


def upstream_error_response(error: UpstreamUnreachable) -> JSONResponse:
    payload = UpstreamErrorPayload(message=error.message, target_url=error.target_url)
    return JSONResponse(
        status_code=502,
        content=payload.model_dump(by_alias=True),
    )


async def _relay_body(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    finally:
        await response.aclose()


class RequestForwarder:
    """
    Stateless relay from this service's origin to the configured upstream.

    Re-issues an inbound request against the upstream target, follows
    redirects, and streams the upstream response back. Transport failures
    come back as a synthetic 502 response, never as an exception.
    """

    def __init__(self, target: UpstreamTarget, client: httpx.AsyncClient):
        self.target = target
        self.client = client

    async def forward(
        self,
        method: str,
        path: Union[str, Iterable[str]],
        query_string: str = "",
        headers: Optional[RawHeaders] = None,
        body: RequestBody = None,
    ) -> Response:
        method = method.upper()
        if method == "OPTIONS":
            return Response(status_code=204)

        target_url = self.target.build_url(path, query_string)
        upstream_headers = prepare_request_headers(headers, method)
        content = None if method in BODYLESS_METHODS else body

        try:
            upstream = await self._send(method, target_url, upstream_headers, content)
        except UpstreamUnreachable as e:
            logger.error("Upstream unreachable while proxying %s %s: %s", method, e.target_url, e.message)
            return upstream_error_response(e)

        logger.debug("Proxied %s %s -> %s", method, target_url, upstream.status_code)

        response = StreamingResponse(_relay_body(upstream), status_code=upstream.status_code)
        response.raw_headers = relay_headers(upstream.headers)
        return response

    async def _send(
        self,
        method: str,
        target_url: str,
        headers: httpx.Headers,
        content: RequestBody,
    ) -> httpx.Response:
        """Send the upstream request and return once response headers arrive."""
        request = self.client.build_request(
            method=method,
            url=target_url,
            headers=headers,
            content=content,
        )
        try:
            return await self.client.send(request, stream=True, follow_redirects=True)
        except httpx.RequestError as e:
            raise UpstreamUnreachable(target_url, str(e) or "Upstream fetch failed") from e


class FixedPathForwarder:
    """Forwards to one fixed upstream path with the same policy as RequestForwarder."""

    def __init__(self, forwarder: RequestForwarder, upstream_path: str):
        self.forwarder = forwarder
        self.upstream_path = upstream_path

    async def forward(
        self,
        method: str,
        query_string: str = "",
        headers: Optional[RawHeaders] = None,
        body: RequestBody = None,
    ) -> Response:
        return await self.forwarder.forward(
            method,
            self.upstream_path,
            query_string=query_string,
            headers=headers,
            body=body,
        )
