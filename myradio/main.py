from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

import myradio.features.controllers  # noqa: F401  registers the built-in controllers
from myradio.core import config
from myradio.core.database.engine import AsyncSessionLocal, init_db
from myradio.core.exceptions import (
    AccessDenied,
    MisconfiguredAction,
    MyRadioError,
    TraversalAttempt,
)
from myradio.features.dispatch.routes import get_dispatcher, router as dispatch_router
from myradio.features.users.dependencies import get_rate_limit_key
from myradio.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="MyRadio",
    description="Module/Action request gate with database-driven permissions",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(key_func=get_rate_limit_key, default_limits=[config.RATE_LIMIT])
app.state.limiter = limiter


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.myradio.features."), timing=timing, tags=tags))


app.add_middleware(SlowAPIMiddleware)
app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))
# Added last so the session is available to everything above
app.add_middleware(SessionMiddleware, secret_key=config.SESSION_SECRET, same_site="lax")

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.DISPLAY_ERRORS:
    log.warning("Displaying server errors to every member")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _shows_errors(request: Request) -> bool:
    """Server error details go to everyone with DISPLAY_ERRORS, else only to AUTH_SHOWERRORS holders."""
    if config.DISPLAY_ERRORS:
        return True
    principal = getattr(request.state, "principal", None)
    dispatcher = getattr(request.state, "dispatcher", None)
    if principal is None or dispatcher is None or not dispatcher.vocabulary_loader.loaded:
        return False
    vocabulary = dispatcher.vocabulary_loader.vocabulary
    return "AUTH_SHOWERRORS" in vocabulary and principal.holds(vocabulary.type_id("AUTH_SHOWERRORS"))


@app.exception_handler(MyRadioError)
async def myradio_error_handler(request: Request, exc: MyRadioError):
    if isinstance(exc, MisconfiguredAction):
        log.error("MISCONFIGURED ACTION: %s", exc.message)
    elif isinstance(exc, TraversalAttempt):
        log.warning("SECURITY: traversal attempt from %s: %s", request.client.host if request.client else "?", exc.details)
    elif isinstance(exc, AccessDenied):
        log.info("Forbidden: %s", exc.details)
    else:
        log.info("%s: %s", exc.code, exc.message)

    message = exc.message
    if exc.status_code >= 500 and not _shows_errors(request):
        message = "An internal error occurred"
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "message": message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Create tables and load the permission vocabulary before the first request."""
    log.info("Initializing database...")
    await init_db()
    async with AsyncSessionLocal() as db:
        await get_dispatcher().vocabulary_loader.ensure_loaded(db)
    log.info("Database initialized successfully")


@app.get("/health")
@limiter.exempt
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Must come last: it matches every path
app.include_router(dispatch_router)
