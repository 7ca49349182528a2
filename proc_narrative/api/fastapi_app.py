"""FastAPI application wiring for the procedure narrative service."""

# ruff: noqa: E402

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


def _truthy_env(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


# Prefer explicitly-exported environment variables over values in `.env`.
# Tests can opt out by setting `NARRATIVE_SKIP_DOTENV=1`.
if not _truthy_env("NARRATIVE_SKIP_DOTENV"):
    load_dotenv(dotenv_path=Path(__file__).resolve().parents[2] / ".env", override=False)

from config.settings import get_narrative_settings
from observability.logging_config import configure_logging, get_logger
from proc_narrative.api.routes.narrative import router as narrative_router
from proc_narrative.api.routes.templates import router as templates_router
from proc_narrative.reporting.template_library import get_template_library

logger = get_logger("fastapi_app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the template library before serving so bad templates fail startup."""
    settings = get_narrative_settings()
    configure_logging(level=logging.INFO, structured=settings.structured_logs)
    library = get_template_library()
    logger.info("Template library ready", extra={"templates": len(library)})
    yield


app = FastAPI(
    title="Procedure Narrative API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS (dev-friendly defaults)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(templates_router, tags=["templates"])
app.include_router(narrative_router)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}
