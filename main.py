"""
Course Plan Review API - Main Application
FastAPI application for authoring course-plan forms, filling in and
validating plans, and reviewing submitted plans.
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import logging
import os

from database.database import engine, Base, SessionLocal
from database import crud
from database.models import Role
from auth.security import hash_password
from workflow.errors import WorkflowError
from workflow.pdf_exporter import EXPORT_DIR

from routers import auth, forms, plans

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@org.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")


def _seed_defaults():
    """Create the default administrator when no user exists yet."""
    db = SessionLocal()
    try:
        if not crud.list_users(db):
            crud.create_user(
                db,
                email=ADMIN_EMAIL,
                display_name="Admin",
                hashed_password=hash_password(ADMIN_PASSWORD),
                role=Role.ADMIN,
            )
            log.info("Default administrator created: %s", ADMIN_EMAIL)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables + seed the administrator."""
    Base.metadata.create_all(bind=engine)
    _seed_defaults()
    yield


app = FastAPI(
    title="Course Plan Review API",
    description="Course-plan forms, AI-assisted answer validation and administrative review",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, **exc.extra()},
    )


# ─── Routers ───────────────────────────────────────────────────────────────────

app.include_router(auth.router)               # /auth/*
app.include_router(forms.router)              # /forms/*
app.include_router(plans.router)              # /plans/*

# Static files - serve exported plan PDFs (EXPORT_DIR is .../uploads/plans)
EXPORT_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads/plans", StaticFiles(directory=str(EXPORT_DIR)), name="plan-exports")


@app.get("/")
def root():
    return {
        "name": "Course Plan Review API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "auth": "/auth",
            "forms": "/forms",
            "plans": "/plans",
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "course-plan-review-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
