"""HTTP surface (FastAPI) consumed by the web client.

The contestant identity arrives in the ``X-Contestant-Id`` header, already
authenticated upstream. Engine errors are rendered as
``{"error": kind, "message": ..., "retryable": ...}`` with their status code.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .errors import ArenaError
from .service import ArenaService
from .validation import InputSanitizer

logger = logging.getLogger(__name__)


def current_contestant(x_contestant_id: Optional[str] = Header(None)) -> str:
    if not x_contestant_id or not x_contestant_id.strip():
        raise HTTPException(401, "missing contestant identity")
    return x_contestant_id.strip()


def create_app(service: ArenaService) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        service.close()

    app = FastAPI(title="Arena Contest Engine", lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(ArenaError)
    async def arena_error_handler(request: Request, exc: ArenaError):
        if exc.retryable:
            logger.warning(f"{request.method} {request.url.path}: {exc.kind} {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.post("/contests", status_code=201)
    def create_contest(
        body: Dict[str, Any] = Body(...),
        contestant: str = Depends(current_contestant),
    ):
        return service.create_contest(body, contestant)

    @app.get("/contests")
    def list_contests(contestant: str = Depends(current_contestant)):
        return service.list_contests(contestant)

    @app.post("/contests/join")
    def join_contest(
        body: Dict[str, Any] = Body(...),
        contestant: str = Depends(current_contestant),
    ):
        request = InputSanitizer.validate_join(body)
        return service.join_contest(request.roomCode, contestant)

    @app.get("/contests/{contest_id}")
    def get_contest(contest_id: str, contestant: str = Depends(current_contestant)):
        return service.contest_view(contest_id, contestant)

    @app.post("/contests/{contest_id}/run")
    def run_code(
        contest_id: str,
        body: Dict[str, Any] = Body(...),
        contestant: str = Depends(current_contestant),
    ):
        return {"result": service.run(contest_id, contestant, body)}

    @app.post("/contests/{contest_id}/submit")
    def submit_code(
        contest_id: str,
        body: Dict[str, Any] = Body(...),
        contestant: str = Depends(current_contestant),
    ):
        return {"result": service.submit(contest_id, contestant, body)}

    @app.get("/contests/{contest_id}/rankings")
    def rankings(contest_id: str, contestant: str = Depends(current_contestant)):
        payload = service.rankings(contest_id)
        if payload["status"] != "available":
            return JSONResponse(status_code=202, content=payload)
        return payload

    @app.get("/contests/{contest_id}/submissions")
    def submissions(
        contest_id: str,
        target: Optional[str] = Query(None, alias="contestant"),
        contestant: str = Depends(current_contestant),
    ):
        return service.submissions(contest_id, target or contestant)

    return app


__all__ = ["create_app", "current_contestant"]
