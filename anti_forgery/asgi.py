"""Starlette integration for the anti-forgery filter.

``AntiForgeryMiddleware`` runs the same token checks as
:func:`anti_forgery.middleware.wrap_anti_forgery` against a live Starlette
request. The session mapping comes from Starlette's ``SessionMiddleware``,
which must be installed outside this middleware.
"""

import inspect
from typing import Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request as StarletteRequest
from starlette.responses import JSONResponse
from starlette.responses import Response as StarletteResponse
from starlette.types import ASGIApp

from anti_forgery.csrf import (
    ReadToken,
    SAFE_METHODS,
    SESSION_KEY,
    bind_response_token,
    prepare_request,
    session_token,
)
from anti_forgery.middleware import (
    AntiForgeryConfigError,
    AntiForgeryOptions,
    Handler,
    handle_error,
)
from anti_forgery.schemas import Request, Response

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


async def read_request(request: StarletteRequest) -> Request:
    form_params: dict[str, Any] = {}
    multipart_params: dict[str, Any] = {}

    content_type = request.headers.get("content-type", "").lower()
    if request.method.lower() not in SAFE_METHODS and content_type.startswith(
        (FORM_CONTENT_TYPE, MULTIPART_CONTENT_TYPE)
    ):
        # Reading the body first caches it for the downstream endpoint.
        await request.body()
        form = await request.form()
        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        if content_type.startswith(MULTIPART_CONTENT_TYPE):
            multipart_params = fields
        else:
            form_params = fields

    return Request(
        method=request.method,
        uri=request.url.path,
        headers=dict(request.headers),
        session=dict(request.session),
        form_params=form_params,
        multipart_params=multipart_params,
    )


def to_starlette_response(response: Any) -> StarletteResponse:
    if isinstance(response, StarletteResponse):
        return response
    if isinstance(response.body, (str, bytes)) or response.body is None:
        return StarletteResponse(
            content=response.body,
            status_code=response.status,
            headers=response.headers,
        )
    return JSONResponse(
        content=response.body,
        status_code=response.status,
        headers=response.headers,
    )


class AntiForgeryMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        options: Optional[AntiForgeryOptions] = None,
        read_token: Optional[ReadToken] = None,
        error_response: Optional[Any] = None,
        error_handler: Optional[Handler] = None,
    ) -> None:
        super().__init__(app)
        if options is not None:
            if any(value is not None for value in (read_token, error_response, error_handler)):
                raise AntiForgeryConfigError(
                    "Pass either options or read_token/error_response/error_handler, not both."
                )
            self.options = options
            return
        self.options = AntiForgeryOptions.resolve(
            read_token=read_token,
            error_response=error_response,
            error_handler=error_handler,
        )

    async def dispatch(
        self, request: StarletteRequest, call_next: RequestResponseEndpoint
    ) -> StarletteResponse:
        prepared = prepare_request(await read_request(request))

        if self.options.rejects(prepared):
            denial = handle_error(self.options, prepared)
            if inspect.isawaitable(denial):
                denial = await denial
            return to_starlette_response(denial)

        request.session[SESSION_KEY] = session_token(prepared)
        response = await call_next(request)
        bound = bind_response_token(Response(session=dict(request.session)), prepared)
        request.session.update(bound.session)
        return response
