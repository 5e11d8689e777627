import asyncio
import logging

logger = logging.getLogger(__name__)

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.api.v1.api_router import api_router
from app.core.config import settings

# Create FastAPI app
app = FastAPI(
    title="School Billing Notifications API",
    description="WhatsApp debt-collection notifications (reminder, due today, overdue) for school invoices",
    version="1.0.0",
    openapi_url=f"/openapi.json",
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with actual frontend domains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")

from app.core.startup import ensure_notification_tables
from app.cron.queue_processor import QueueProcessor


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    await ensure_notification_tables()
    app.state.queue_processor = QueueProcessor()
    if not settings.CRON_ENABLED:
        logger.info("Cron disabled (CRON_ENABLED=false); scan and queue only run on manual trigger")
        return
    # Start scan + queue crons (non-blocking)
    from app.core.cron_runner import run_invoice_scan_cron_loop, run_notification_queue_cron_loop
    app.state.cron_tasks = [
        asyncio.create_task(run_invoice_scan_cron_loop()),
        asyncio.create_task(run_notification_queue_cron_loop(app.state.queue_processor)),
    ]


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event."""
    for task in getattr(app.state, "cron_tasks", []):
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass  # expected on cancel


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Internal server error"})


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "message": "Validation error",
            "errors": _serializable_validation_errors(exc.errors()),
        },
    )

# Exception handlers
@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

def _serializable_validation_errors(errors: list) -> list:
    """Convert validation error dicts to JSON-serializable form (e.g. ctx may contain Exception)."""
    out = []
    for e in errors:
        item = {"type": e.get("type"), "loc": e.get("loc"), "msg": e.get("msg")}
        if "ctx" in e and e["ctx"]:
            item["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
        out.append(item)
    return out


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    errors_serializable = _serializable_validation_errors(exc.errors())
    logger.info(
        "Validation error 422: method=%s path=%s errors=%s",
        request.method,
        request.url.path,
        errors_serializable,
    )
    return JSONResponse(
        status_code=422,
        content={
            "message": "Validation error",
            "errors": errors_serializable,
        },
    )
