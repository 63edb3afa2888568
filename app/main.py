import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from app.api.v1.health import router as health_router
from app.api.v1.evaluation import router as evaluation_router
from app.api.v1.resumes import router as resumes_router
from app.core.cors import cors_allow_origin_regex, cors_allowed_origins
from app.core.errors import EvaluationError
from app.core.rate_limit import limiter
from app.core.config import settings
from dotenv import load_dotenv
from app.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

logger = logging.getLogger(__name__)

app = FastAPI(title="HireGenAI Evaluation API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_origin_regex=cors_allow_origin_regex(),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(EvaluationError)
async def evaluation_error_handler(request: Request, exc: EvaluationError):
    if exc.status_code >= 500:
        logger.error("evaluation_error path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
    else:
        logger.info("evaluation_rejected path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg") or "Invalid request")
    # upload route keeps its own {error} shape
    if request.url.path.startswith("/v1/resumes/"):
        return JSONResponse(status_code=400, content={"error": message})
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": "validation_error", "message": message},
    )


app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(evaluation_router, prefix="/v1", tags=["Evaluation"])
app.include_router(resumes_router, prefix="/v1", tags=["Resumes"])
