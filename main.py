import logging
from contextlib import AsyncExitStack

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mongoengine.errors import NotUniqueError, ValidationError as DocumentValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.connections import mongo_lifespan
from app.connections.redis import redis_lifespan
from app.api.user import router as user_router
from app.api.event import router as event_router
from app.api.cart import router as cart_router
from app.api.booking import router as booking_router
from app.api.payment import router as payment_router
from app.services.notifier import EmailNotifier
from app.services.token import TokenService
from app.utils.base.errors import AppError, envelope_status
from app.utils.config import settings


logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("campus.app")


def configure_services(app: FastAPI) -> None:
    app.state.settings = settings
    app.state.token_service = TokenService.from_settings(settings)
    app.state.notifier = EmailNotifier.from_settings(settings)


async def combined_lifespan(app: FastAPI):
    configure_services(app)
    async with AsyncExitStack() as stack:
        await stack.enter_async_context(mongo_lifespan(app))
        await stack.enter_async_context(redis_lifespan(app))

        yield


app = FastAPI(title="Campus Events", version="0.1.0", lifespan=combined_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": envelope_status(status_code), "message": message})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"status": exc.status, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return _envelope(400, "Invalid input data. " + "; ".join(problems))


@app.exception_handler(DocumentValidationError)
async def document_validation_handler(request: Request, exc: DocumentValidationError) -> JSONResponse:
    return _envelope(400, f"Invalid input data. {exc.message}")


@app.exception_handler(NotUniqueError)
async def not_unique_handler(request: Request, exc: NotUniqueError) -> JSONResponse:
    return _envelope(409, "Duplicate field value. Please use another value")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return _envelope(404, f"Can't find {request.url.path} on this server!")
    return _envelope(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    app_settings = getattr(request.app.state, "settings", settings)
    message = f"Something went wrong: {exc}" if app_settings.exposes_errors else "Something went wrong"
    return _envelope(500, message)


app.include_router(user_router, prefix="/api/v1/users")
app.include_router(event_router, prefix="/api/v1/events")
app.include_router(cart_router, prefix="/api/v1/cart")
app.include_router(booking_router, prefix="/api/v1/bookings")
app.include_router(payment_router, prefix="/api/v1/payments")
