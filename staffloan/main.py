from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from staffloan.core.errors import WorkflowError
from staffloan.core.logging import configure_logging
from staffloan.services.outbox_worker import start_outbox_worker_task
from staffloan import models  # noqa: F401
from staffloan.routers.audit import router as audit_router
from staffloan.routers.auth import router as auth_router
from staffloan.routers.closures import router as closures_router
from staffloan.routers.expenses import router as expenses_router
from staffloan.routers.outbox import router as outbox_router
from staffloan.routers.profiles import router as profiles_router
from staffloan.routers.schedule_proposals import router as schedule_proposals_router
from staffloan.routers.time_entries import router as time_entries_router
from staffloan.routers.weekly_reports import router as weekly_reports_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    task = start_outbox_worker_task()
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Outbox worker stopped")


app = FastAPI(
    title="Staff Loan Workflow",
    lifespan=lifespan,
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    logger.info(
        "Transition refused",
        extra={
            "path": request.url.path,
            "error": type(exc).__name__,
            "status_code": exc.status_code,
            "user_id": getattr(request.state, "user_id", None),
        },
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(schedule_proposals_router)
app.include_router(time_entries_router)
app.include_router(expenses_router)
app.include_router(weekly_reports_router)
app.include_router(closures_router)
app.include_router(audit_router)
app.include_router(outbox_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
