# src/todoplus/api/app.py

"""FastAPI application: REST surface for the ToDo+ web app."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..cli.bootstrap import create_initial_state, start_background_services
from ..config import get_settings
from ..core.errors import TodoError, error_response
from ..core.state import AppState
from ..tasks import task_api

logger = logging.getLogger(__name__)


def _state(request: Request) -> AppState:
    return request.app.state.todo


def create_app(state: AppState | None = None) -> FastAPI:
    settings = state.settings if state is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.todo is None:
            app.state.todo = create_initial_state(settings=settings)
        services = await start_background_services(app.state.todo)
        try:
            yield
        finally:
            await services.stop()

    app = FastAPI(title="ToDo+", lifespan=lifespan)
    app.state.todo = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(getattr(settings, "cors_origins", ["*"]) or ["*"]),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TodoError)
    def handle_todo_error(request: Request, exc: TodoError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.message))

    @app.exception_handler(RequestValidationError)
    def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "invalid request"
        if errors:
            loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
            message = f"{loc}: {errors[0].get('msg', 'invalid')}" if loc else str(errors[0].get("msg", message))
        return JSONResponse(status_code=400, content=error_response(message))

    def internal_error(exc: Exception) -> JSONResponse:
        message = str(exc) if getattr(settings, "expose_errors", True) else "internal error"
        return JSONResponse(status_code=500, content=error_response(message or "internal error"))

    @app.exception_handler(sqlite3.Error)
    def handle_store_error(request: Request, exc: sqlite3.Error) -> JSONResponse:
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
        return internal_error(exc)

    @app.exception_handler(Exception)
    def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return internal_error(exc)

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/auth")
    def auth(payload: dict[str, Any], request: Request) -> dict[str, Any]:
        user = task_api.authenticate(_state(request), payload)
        return {"user": user.to_dict()}

    @app.post("/api/tasks")
    def create_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
        task = task_api.create_task(_state(request), payload)
        return {"task": task.to_dict()}

    @app.get("/api/tasks")
    def list_tasks(
        request: Request,
        external_id: str | None = Query(default=None, alias="externalId"),
        filter_name: str | None = Query(default=None, alias="filter"),
        q: str | None = Query(default=None),
    ) -> dict[str, Any]:
        tasks = task_api.list_tasks(_state(request), external_id=external_id, filter_name=filter_name, search=q)
        return {"tasks": [t.to_dict() for t in tasks]}

    @app.put("/api/tasks/{task_id}")
    def update_task(task_id: int, payload: dict[str, Any], request: Request) -> dict[str, Any]:
        task = task_api.update_task(_state(request), task_id, payload)
        return {"task": task.to_dict()}

    @app.delete("/api/tasks/{task_id}")
    def delete_task(task_id: int, request: Request) -> dict[str, Any]:
        task_api.delete_task(_state(request), task_id)
        return {"deleted": True}

    return app
