import logging

import jwt
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import bookings, content, orders, reporting, search
from core.auth import AUTH_EXEMPT_PATHS, extract_token
from core.config import APP_VERSION, settings
from core.proxy import INTERNAL_ERROR
from db.database import init_db

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Hotel Booking API", version=APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Hotel search and content lookups are open to anonymous visitors
PUBLIC_PREFIXES = ("/proxy/",)


@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    """Reject unauthenticated requests when auth is configured."""
    if not settings.auth_secret:
        return await call_next(request)

    path = request.url.path
    if path in AUTH_EXEMPT_PATHS or path.startswith(PUBLIC_PREFIXES) or request.method == "OPTIONS":
        return await call_next(request)

    token = extract_token(request)
    if not token:
        return JSONResponse(status_code=401, content={"detail": "Authentication required"})

    try:
        payload = jwt.decode(token, settings.auth_secret, algorithms=["HS256"], options={"verify_aud": False})
    except jwt.InvalidTokenError:
        # Never log the token itself
        logger.info("Rejected request to %s: invalid or expired token", path)
        return JSONResponse(status_code=401, content={"detail": "Invalid or expired token"})

    request.state.user_id = payload.get("sub", "")
    request.state.user_email = payload.get("email", "")
    return await call_next(request)


def _validation_message(errors: list) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    if first.get("type") == "json_invalid" or not loc:
        return "Invalid JSON body"
    if first.get("type") == "missing":
        return f"{loc[-1]} is required"
    return f"{'.'.join(loc)}: {first.get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": _validation_message(errors), "details": jsonable_encoder(errors)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "error": INTERNAL_ERROR})


app.include_router(search.router)
app.include_router(content.router)
app.include_router(orders.router)
app.include_router(bookings.router)
app.include_router(reporting.router)


@app.on_event("startup")
async def on_startup():
    await init_db()
    logger.info("Hotel Booking API %s started", APP_VERSION)
