from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from anti_forgery.asgi import AntiForgeryMiddleware
from anti_forgery.csrf import FORM_FIELD, SESSION_KEY
from anti_forgery.middleware import AntiForgeryOptions
from anti_forgery.observability import configure_logging, request_logging_middleware
from anti_forgery.settings import Settings, get_settings


def create_app(settings: Optional[Settings] = None, **anti_forgery_options) -> FastAPI:
    settings = settings or get_settings()
    logger = configure_logging(settings)
    # Starlette builds middleware lazily, so bad options are rejected here.
    options = AntiForgeryOptions.resolve(**anti_forgery_options)

    app = FastAPI(
        title=settings.app_name,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url=None,
    )

    # Starlette nests middleware in reverse order of registration: both of
    # these run inside SessionMiddleware and see request.session.
    app.add_middleware(AntiForgeryMiddleware, options=options)
    app.middleware("http")(request_logging_middleware(logger, settings.request_id_header))
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        same_site=settings.session_same_site,
        https_only=settings.session_https_only,
    )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception(
            "Unhandled error request_id=%s method=%s path=%s",
            request_id,
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "request_id": request_id},
        )

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse)
    def form_page(request: Request):
        token = request.session[SESSION_KEY]
        return (
            '<form method="post" action="/messages">'
            f'<input type="hidden" name="{FORM_FIELD}" value="{token}">'
            '<input name="message"><button>Send</button></form>'
        )

    @app.get("/token")
    def read_token(request: Request):
        return {"token": request.session[SESSION_KEY]}

    @app.post("/messages")
    async def post_message(request: Request):
        form = await request.form()
        return {"message": form.get("message")}

    @app.post("/logout")
    def logout(request: Request):
        request.session.clear()
        return {"status": "logged_out"}

    return app
