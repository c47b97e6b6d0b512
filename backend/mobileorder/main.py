import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mobileorder.api.health import router as health_router
from mobileorder.api.routes_admin import router as admin_router
from mobileorder.api.routes_auth import router as auth_router
from mobileorder.api.routes_catalogue import router as catalogue_router
from mobileorder.api.routes_order import router as order_router
from mobileorder.config import settings
from mobileorder.db import init_db
from mobileorder.errors import AppError, ErrCode, RateLimitedError
from mobileorder.services.rate_limiter import RateLimiter

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
log = logging.getLogger("mobileorder")

STATUS_BY_CODE = {
    ErrCode.REQ_BODY_DECODE_FAILED: 400,
    ErrCode.BAD_PARAM: 400,
    ErrCode.VALIDATION_FAILED: 400,
    ErrCode.UNAUTHORIZED: 401,
    ErrCode.FORBIDDEN: 403,
    ErrCode.NO_DATA: 404,
    ErrCode.CONFLICT: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    scheduler = BackgroundScheduler()

    def cleanup_job():
        app.state.rate_limiter.cleanup_old_attempts()

    scheduler.add_job(
        cleanup_job,
        "interval",
        seconds=settings.RATE_LIMIT_CLEANUP_INTERVAL_SECONDS,
        id="cleanup_login_attempts",
    )
    scheduler.start()

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Mobile Order - Backend", version="0.1.0", lifespan=lifespan)
app.state.rate_limiter = RateLimiter()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
def app_error_handler(request: Request, exc: AppError):
    status = STATUS_BY_CODE.get(exc.code, 500)
    if status == 500:
        log.error("%s %s failed [%s]: %s", request.method, request.url.path, exc.code.value, exc,
                  exc_info=exc)
        message = "internal server error"
    else:
        log.info("%s %s rejected [%s]: %s", request.method, request.url.path, exc.code.value, exc)
        message = exc.message

    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return JSONResponse(
        status_code=status,
        content={"err_code": exc.code.value, "message": message},
        headers=headers,
    )


def _validation_details(exc: RequestValidationError):
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "err_code": ErrCode.VALIDATION_FAILED.value,
            "message": "request validation failed",
            "details": _validation_details(exc),
        },
    )


app.include_router(health_router, tags=["health"])

app.include_router(auth_router)

app.include_router(catalogue_router)

app.include_router(order_router)

app.include_router(admin_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("mobileorder.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
