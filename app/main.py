import os
import logging
from dotenv import load_dotenv

load_dotenv(override=True)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import auth
from app.api.routes import workout_types
from app.api.routes.workout import router as workout_router
from app.api.routes.plan import router as plan_router
from app.api.routes.dashboard import router as dashboard_router

from app.api.middleware.misc import SafeError, field_errors

logger = logging.getLogger(__name__)

app = FastAPI(title="FitTrack API")

@app.exception_handler(SafeError)
async def safe_error_handler(_, exc: SafeError):
    content = {"error": str(exc)}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
    )

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail
        },
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_error_handler(_, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request data",
            "errors": field_errors(exc)
        },
    )

@app.exception_handler(Exception)
async def generic_error_handler(_, exc: Exception):
    logger.error("Unhandled error: %s", exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "server error"
        },
    )

@app.get("/")
async def root():
    return JSONResponse(content={"message": "OK"}, status_code=200)

app.include_router(auth.router)
app.include_router(workout_types.router)
app.include_router(workout_router.router)
app.include_router(plan_router.router)
app.include_router(dashboard_router.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, log_level='debug', reload=True)
