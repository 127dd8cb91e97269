"""FastAPI application for BrainFlow."""

from contextlib import asynccontextmanager

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from brainflow.config.observability import init_observability
from brainflow.config.settings import AppSettings
from brainflow.db.postgres_client import close_postgres_client, get_postgres_client
from brainflow.models.schemas import HealthResponse
from brainflow.routers import chat_router, graph_router, notes_router, vault_router
from brainflow.services.dependencies import reset_services

load_dotenv()

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]
)

logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting BrainFlow API")
    init_observability()

    try:
        pg_client = await get_postgres_client()
        await pg_client.initialize_schema()
        logger.info("Database connection established")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        # Keep serving; /health reports the database as unhealthy

    yield

    logger.info("Shutting down BrainFlow API")
    await reset_services()
    await close_postgres_client()


app = FastAPI(
    title="BrainFlow API",
    description="AI-assisted personal knowledge management with a linked note graph",
    version=VERSION,
    lifespan=lifespan,
)

# allow_credentials=True rules out "*" origins
settings = AppSettings()
origins = sorted({
    "http://localhost:3000",
    "http://localhost:5173",
    settings.frontend_url,
})

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notes_router)  # /api/notes - Note CRUD, writes and generation
app.include_router(graph_router)  # /api/graph - Graph, related notes, recommendations
app.include_router(vault_router)  # /api/vault - Virtual folders and Markdown files
app.include_router(chat_router)  # /api/chat - Vault assistant with file tools


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check the health of the API and its database."""
    try:
        pg_client = await get_postgres_client()
        pg_health = await pg_client.health_check()
    except Exception as e:
        pg_health = {"status": "unhealthy", "error": str(e)}

    return HealthResponse(
        status="healthy" if pg_health.get("status") == "healthy" else "degraded",
        postgres=pg_health,
        version=VERSION,
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "BrainFlow API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
    }
