"""
Main FastAPI application for the Compliance Framework Service.

This service ingests custom compliance frameworks, attaches them to projects
and tracks implementation progress for the framework plugins.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Internal modules
from .config import settings
from .database import engine
from .logging_config import setup_logging
from .models import Base
from .routers import frameworks, plugins, project_frameworks, projects

setup_logging()

# --- App Initialization ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all database tables on startup based on the shared Base
    Base.metadata.create_all(bind=engine)
    yield

app = FastAPI(
    title="Compliance Framework Service",
    description="Imports custom compliance frameworks and tracks their implementation across projects.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- CORS Configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- API Router Definition ---

app.include_router(plugins.router, prefix=settings.API_PREFIX)
app.include_router(frameworks.router, prefix=settings.API_PREFIX)
app.include_router(project_frameworks.router, prefix=settings.API_PREFIX)
app.include_router(projects.router, prefix=settings.API_PREFIX)

# --- Root Endpoint ---

@app.get("/")
def read_root():
    return {"service": "Compliance Framework Service", "status": "running", "version": "1.0.0"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)
