"""
FastAPI server for the Talent Sonar backend.

Exposes candidate/job fit scoring, match scorecards, next-action suggestions,
outreach drafting, resume parsing, the pipeline event log and semantic
candidate search over HTTP.

To run the server:
    python -m uvicorn talentsonar.api.server:app --reload --app-dir src
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from talentsonar.api.handlers.exceptions import (
    app_error_handler,
    validation_exception_handler,
)
from talentsonar.api.middleware.logging import log_requests_middleware
from talentsonar.api.routes import analysis, health, outreach, pipeline, resume, search
from talentsonar.config import settings
from talentsonar.utils.exceptions import AppError
from talentsonar.utils.logger import configure_logging

# ------------- FastAPI Setup -------------

configure_logging()

app = FastAPI(
    title="Talent Sonar Backend",
    description="Recruiting API: fit scoring, outreach, resume parsing and pipeline tracking",
    version="1.0",
)

origins = [
    "http://localhost:3000",  # local development
    "http://127.0.0.1:3000",  # local development
    "http://localhost:5173",  # vite dev server
    "http://127.0.0.1:5173",  # vite dev server
]

if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

# Without a production frontend URL, allow all origins
if not settings.FRONTEND_URL:
    origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(log_requests_middleware)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(AppError, app_error_handler)

app.include_router(health.router)
app.include_router(analysis.router)
app.include_router(outreach.router)
app.include_router(resume.router)
app.include_router(pipeline.router)
app.include_router(search.router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
