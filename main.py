import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import AdminGate, AdminPolicy
from config import Settings, get_settings
from database import create_store
from errors import NotFound, PortfolioError, StorageUnavailable
from notifications import NotificationDispatcher, SmtpConfig
from routes import router
from services import ContactsService, ProjectsService

logger = logging.getLogger(__name__)


def _describe_validation_errors(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if not field:
        return f"Invalid request: {first.get('msg', 'malformed body')}"
    return f"Invalid request: {field}: {first.get('msg', 'invalid value')}"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    store = create_store(settings)
    admin_gate = AdminGate(settings.admin_key or None)
    dispatcher = NotificationDispatcher(SmtpConfig.from_settings(settings))
    projects = ProjectsService(store)
    contacts = ContactsService(store, dispatcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if admin_gate.policy is AdminPolicy.OPEN:
            logger.warning(
                "ADMIN_KEY is not set: admin endpoints are open to every caller. "
                "Set ADMIN_KEY before deploying."
            )
        # Creates the document on first boot.
        async with store.session():
            pass
        logger.info(
            "Document store ready (%s), notifications %s",
            store.describe(),
            "enabled" if dispatcher.configured else "disabled",
        )
        yield
        await contacts.drain()

    app = FastAPI(title="Portfolio API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.admin_gate = admin_gate
    app.state.dispatcher = dispatcher
    app.state.projects = projects
    app.state.contacts = contacts

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
        logger.error(
            "Storage unavailable during %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Storage unavailable"})

    @app.exception_handler(PortfolioError)
    async def portfolio_error_handler(request: Request, exc: PortfolioError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _describe_validation_errors(exc)})

    api_prefix = settings.api_prefix.rstrip("/")
    app.include_router(router, prefix=api_prefix)

    if api_prefix:
        # Unmatched API paths are 404 for every method, never the site route's 405.
        @app.api_route(
            api_prefix + "/{rest:path}",
            methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"],
            include_in_schema=False,
        )
        async def api_not_found(rest: str):
            raise NotFound()

    # Static site with single-page-app fallback to index.html
    static_root = Path(settings.static_dir).resolve()

    @app.get("/{full_path:path}", include_in_schema=False)
    async def site(full_path: str):
        path = "/" + full_path
        if api_prefix and (path == api_prefix or path.startswith(api_prefix + "/")):
            raise NotFound()
        if static_root.is_dir():
            candidate = (static_root / full_path).resolve()
            if full_path and candidate.is_file() and static_root in candidate.parents:
                return FileResponse(candidate)
            index = static_root / "index.html"
            if index.is_file():
                return FileResponse(index)
        raise NotFound()

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)
