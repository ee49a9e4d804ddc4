# -*- coding: utf-8 -*-
"""
NutriGenie API

Accounts, health profile, AI nutrition coaching chat and saved meal plans.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .app_db import AppDatabase
from .auth.api import router as auth_router
from .chat.api import router as chat_router
from .chat.llm import ChatModelClient, LLMError
from .chat.tools import ToolInputError
from .config import Settings
from .meal_plans.api import router as meal_plans_router
from .profile.api import router as profile_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, *, llm_client=None) -> FastAPI:
    """Build the app with its own database handle and model client.

    `llm_client` is anything with the `ChatModelClient.complete` signature.
    """
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db = AppDatabase(settings.app_db_path)
    llm = llm_client if llm_client is not None else ChatModelClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.init_schema()
        yield
        close = getattr(llm, "close", None)
        if callable(close):
            close()

    app = FastAPI(
        title="NutriGenie API",
        description="AI nutrition coaching, health profile and meal plans",
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.llm = llm

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Ensure the schema exists even when lifespan events are not triggered (e.g. some test clients).
    db.init_schema()

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(chat_router)
    app.include_router(meal_plans_router)

    @app.exception_handler(LLMError)
    async def _llm_error(request: Request, exc: LLMError) -> JSONResponse:
        logger.error("Chat model failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.exception_handler(ToolInputError)
    async def _tool_input_error(request: Request, exc: ToolInputError) -> JSONResponse:
        logger.error("Rejected tool input on %s: %s", request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.get("/api/health")
    def health() -> dict:
        return {"ok": True}

    return app


# Serve with `uvicorn nutrigenie.main:create_app --factory`.
if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
