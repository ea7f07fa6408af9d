import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from anti_forgery.csrf import (
    ReadToken,
    bind_response_token,
    default_read_token,
    is_safe_method,
    is_valid,
    prepare_request,
)
from anti_forgery.schemas import Request, Response

logger = logging.getLogger(__name__)

DEFAULT_ERROR_BODY = "<h1>Invalid anti-forgery token</h1>"

Handler = Callable[[Request], Any]


class AntiForgeryConfigError(ValueError):
    pass


def access_denied(body: str) -> Response:
    return Response(status=403, headers={"Content-Type": "text/html"}, body=body)


@dataclass(frozen=True)
class AntiForgeryOptions:
    read_token: ReadToken = default_read_token
    error_response: Optional[Any] = None
    error_handler: Optional[Handler] = None

    def __post_init__(self) -> None:
        if self.error_response is not None and self.error_handler is not None:
            raise AntiForgeryConfigError(
                "Only one of error_response and error_handler may be specified."
            )
        if self.read_token is None:
            object.__setattr__(self, "read_token", default_read_token)

    @classmethod
    def resolve(
        cls,
        read_token: Optional[ReadToken] = None,
        error_response: Optional[Any] = None,
        error_handler: Optional[Handler] = None,
    ) -> "AntiForgeryOptions":
        return cls(
            read_token=read_token,
            error_response=error_response,
            error_handler=error_handler,
        )

    def rejects(self, request: Request) -> bool:
        if is_safe_method(request) or is_valid(request, self.read_token):
            return False
        logger.warning(
            "anti-forgery token rejected method=%s uri=%s",
            request.method.upper(),
            request.uri,
        )
        return True


def handle_error(options: AntiForgeryOptions, request: Request) -> Any:
    if options.error_handler is not None:
        return options.error_handler(request)
    if options.error_response is not None:
        return options.error_response
    return access_denied(DEFAULT_ERROR_BODY)


def wrap_anti_forgery(
    handler: Handler,
    *,
    read_token: Optional[ReadToken] = None,
    error_response: Optional[Any] = None,
    error_handler: Optional[Handler] = None,
) -> Handler:
    """Wrap ``handler`` so unsafe requests must carry the session's token.

    Every request gets a token in its session before anything else happens,
    so even the first GET can render it into a form. Requests other than
    GET and HEAD must present the same token in the ``__anti-forgery-token``
    form field or in the ``X-CSRF-Token`` or ``X-XSRF-Token`` header, or
    they are denied.

    Options:

    read_token     -- function taking a request and returning the presented
                      token, or None; replaces the default lookup entirely
    error_response -- response returned when the token is missing or wrong
    error_handler  -- function called with the request when the token is
                      missing or wrong; may be a coroutine function when
                      ``handler`` is one

    Only one of error_response and error_handler may be given, and a
    coroutine function error_handler needs a coroutine function handler;
    otherwise AntiForgeryConfigError is raised here. A coroutine
    function ``handler`` gets a coroutine function back.
    """
    options = AntiForgeryOptions.resolve(
        read_token=read_token,
        error_response=error_response,
        error_handler=error_handler,
    )

    if inspect.iscoroutinefunction(handler):

        async def async_anti_forgery(request: Request) -> Any:
            request = prepare_request(request)
            if options.rejects(request):
                denial = handle_error(options, request)
                if inspect.isawaitable(denial):
                    denial = await denial
                return denial
            response = await handler(request)
            if response is None:
                return None
            return bind_response_token(response, request)

        return async_anti_forgery

    if inspect.iscoroutinefunction(error_handler):
        raise AntiForgeryConfigError(
            "A coroutine function error_handler needs a coroutine function handler."
        )

    def anti_forgery(request: Request) -> Any:
        request = prepare_request(request)
        if options.rejects(request):
            return handle_error(options, request)
        response = handler(request)
        if response is None:
            return None
        return bind_response_token(response, request)

    return anti_forgery
