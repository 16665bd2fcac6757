"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlmodel import SQLModel

from eventlane.api.automation import router as automation_router
from eventlane.config import get_settings
from eventlane.db.session import engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate settings and create database tables on startup."""
    get_settings().validate()
    # Import models to register them with SQLModel
    import eventlane.models  # noqa: F401
    SQLModel.metadata.create_all(engine)
    yield

app = FastAPI(
    title="EventLane Automation API",
    description="Operator API for notification automation: dispatch ledger, scanner and triggers",
    version="1.0.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(automation_router)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
