# === backend/app/main.py ===
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.api.v1.api import api_router
from app.api.v1.endpoints import dynamic
from app.core.config import settings
from app.core.errors import DefinitionValidationError, SqlEndpointError
from app.db.database import build_engine, build_sessionmaker, create_db_and_tables
import time
import logging

#logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up...")
    engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    app.state.db_engine = engine
    app.state.session_factory = build_sessionmaker(engine)
    await create_db_and_tables(engine)
    yield
    logger.info("Shutting down...")
    await engine.dispose()

app = FastAPI(
    lifespan=lifespan,
    title="SQL Endpoint Service",
    description="Serve HTTP endpoints backed by parameterized SQL",
    version="1.0.0"
)

#middleware security
app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"])

#CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=86400,  # 24 hours
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Log slow requests
    if process_time > settings.SLOW_REQUEST_SECONDS:
        logger.warning(f"Slow request: {request.method} {request.url} took {process_time:.2f}s")

    return response

#error mapping
@app.exception_handler(SqlEndpointError)
async def sql_endpoint_error_handler(request: Request, exc: SqlEndpointError):
    content = {"status": "error", "message": exc.message}
    if isinstance(exc, DefinitionValidationError):
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"status": "error", "message": "Internal server error"})

#API router
app.include_router(api_router, prefix="/api/v1")

#dynamic endpoints
app.include_router(dynamic.router, prefix=settings.DYNAMIC_PREFIX, tags=["Dynamic"])

#health check
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": "1.0.0"
    }

#root
@app.get("/")
async def root():
    return {
        "message": "SQL Endpoint Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "dynamic_prefix": settings.DYNAMIC_PREFIX
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
