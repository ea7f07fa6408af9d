import hmac
import secrets
from typing import Callable, Optional, Union

from anti_forgery.schemas import Request, Response

SESSION_KEY = "__anti-forgery-token"
FORM_FIELD = "__anti-forgery-token"
CSRF_HEADER = "x-csrf-token"
XSRF_HEADER = "x-xsrf-token"
SAFE_METHODS = frozenset({"head", "get"})

TOKEN_BYTES = 60

ReadToken = Callable[[Request], Optional[str]]


def new_token() -> str:
    # 60 bytes encode to 80 characters of [A-Za-z0-9_-], without padding.
    return secrets.token_urlsafe(TOKEN_BYTES)


def session_token(message: Union[Request, Response]) -> Optional[str]:
    session = message.session
    if session is None:
        return None
    return session.get(SESSION_KEY)


def prepare_request(request: Request) -> Request:
    if session_token(request) is not None:
        return request
    session = {**request.session, SESSION_KEY: new_token()}
    return request.model_copy(update={"session": session})


def bind_response_token(response: Response, request: Request) -> Response:
    """Keep the request's token in the outgoing session.

    The request's token always wins, even over a different token the handler
    put into its own session.
    """
    request_token = session_token(request)
    if session_token(response) == request_token:
        return response

    if response.sets_session:
        session = dict(response.session or {})
    else:
        session = dict(request.session)
    session[SESSION_KEY] = request_token
    return response.model_copy(update={"session": session})


def is_safe_method(request: Request) -> bool:
    return request.method in SAFE_METHODS


def form_params(request: Request) -> dict:
    return {**request.multipart_params, **request.form_params}


def default_read_token(request: Request) -> Optional[str]:
    for candidate in (
        form_params(request).get(FORM_FIELD),
        request.header(CSRF_HEADER),
        request.header(XSRF_HEADER),
    ):
        if candidate is not None:
            return candidate
    return None


def is_valid(request: Request, read_token: ReadToken = default_read_token) -> bool:
    submitted_token = read_token(request)
    stored_token = session_token(request)
    if not isinstance(submitted_token, str) or not isinstance(stored_token, str):
        return False
    return hmac.compare_digest(
        submitted_token.encode("utf-8"), stored_token.encode("utf-8")
    )
