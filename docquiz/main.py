"""
DocQuiz API - Main Application
FILE: docquiz/main.py
"""
from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docquiz.core.exceptions import DocQuizError
from docquiz.db.mongodb import connect_to_mongo, close_mongo_connection, ensure_indexes, get_database
from docquiz.services import llm_client
from docquiz.api.document import router as documents_router
from docquiz.api.quiz import router as quiz_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect MongoDB and report configured AI providers"""
    logger.info("🚀 Starting DocQuiz API...")

    try:
        await connect_to_mongo()
        await ensure_indexes(get_database())
        providers = llm_client.get_available_providers()
        logger.info(f"✓ LLM providers with API keys: {providers or 'none'}")
    except Exception as e:
        logger.error(f"❌ DocQuiz failed to start: {e}")
        raise

    yield

    logger.info("🛑 Shutting down DocQuiz API...")
    try:
        await close_mongo_connection()
    except Exception as e:
        logger.error(f"❌ Error while closing MongoDB: {e}")


app = FastAPI(
    title="DocQuiz API",
    description="""
    Turns uploaded documents into AI-generated summaries and quizzes.

    - **Documents**: upload PDF/TXT files, process them in the background, retry failures
    - **Quizzes**: multiple choice, true/false and fill-in-the-blank quizzes per document
    - **Attempts**: take quizzes, get per-question feedback, scored results and analysis

    Every `/api` route expects the caller's id in the `X-User-Id` header.
    """,
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:4000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DocQuizError)
async def docquiz_error_handler(request: Request, exc: DocQuizError):
    """Map domain errors to their HTTP status"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message}
    )


@app.middleware("http")
async def log_and_time_requests(request: Request, call_next):
    """Log each request and attach its duration"""
    started = time.time()
    logger.info(f"📨 {request.method} {request.url.path}")
    response = await call_next(request)
    duration_ms = round((time.time() - started) * 1000, 2)
    response.headers["X-Process-Time-Ms"] = str(duration_ms)
    logger.info(f"📤 {request.method} {request.url.path} - {response.status_code} in {duration_ms}ms")
    return response


app.include_router(documents_router, prefix="/api", tags=["Documents"])
app.include_router(quiz_router, prefix="/api", tags=["Quizzes"])


@app.get("/", tags=["Root"])
async def root():
    return {
        "service": app.title,
        "version": API_VERSION,
        "docs": "/docs",
        "routes": ["/api/documents", "/api/quizzes/{quiz_id}", "/api/attempts", "/health"],
    }


async def _mongodb_status() -> dict:
    try:
        await get_database().command("ping")
    except Exception as e:
        logger.error(f"❌ MongoDB health check failed: {e}")
        return {"status": "unhealthy", "message": str(e)}
    return {"status": "healthy"}


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health of MongoDB and of the configured LLM provider

    Returns 503 when any component is not usable.
    """
    components = {
        "mongodb": await _mongodb_status(),
        "llm": await llm_client.health_check(),
    }
    healthy = (
        components["mongodb"]["status"] == "healthy"
        and components["llm"].get("status") == "ready"
    )

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "degraded",
            "timestamp": time.time(),
            "components": components,
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("docquiz.main:app", host="0.0.0.0", port=8080, reload=True)
