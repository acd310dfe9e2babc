"""FastAPI application exposing chore and user management over HTTP."""

from __future__ import annotations

import asyncio
import datetime
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI, HTTPException, Response, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from chorehub.exceptions import ChoreNotFoundError, ChoreValidationError
from chorehub.logging_abstraction import get_logger
from chorehub.status import chore_status
from chorehub.structs import ChoreStatus, CreateChoreRequest, GlobalObject, RecurrenceType, User

if TYPE_CHECKING:
    from chorehub.services import ChoreService
    from chorehub.store import ChoreStore
    from chorehub.structs import Chore

g = GlobalObject()
logger = get_logger(__name__)


class ChoreDTO(BaseModel):
    """API view of a chore, decoupled from the stored model."""

    id: int
    name: str
    description: str | None
    recurrence_type: RecurrenceType
    recurrence_pattern: str | None
    assigned_username: str | None
    created_date: datetime.datetime
    last_completed_date: datetime.datetime | None
    next_due_date: datetime.datetime | None
    status: ChoreStatus

    @classmethod
    def from_chore(cls, chore: Chore) -> ChoreDTO:
        return cls(
            id=chore.id,
            name=chore.name,
            description=chore.description,
            recurrence_type=chore.recurrence_type,
            recurrence_pattern=chore.recurrence_pattern,
            assigned_username=chore.assigned_user.name if chore.assigned_user else None,
            created_date=chore.created_date,
            last_completed_date=chore.last_completed_date,
            next_due_date=chore.next_due_date,
            status=chore_status(chore),
        )


class CreateUserRequest(BaseModel):
    name: str
    shortname: str | None = None


app = FastAPI(title="ChoreHub")


def _service() -> ChoreService:
    if g.chore_service is None:
        raise HTTPException(status_code=503, detail={"message": "ChoreHub is not initialized"})
    return g.chore_service


def _store() -> ChoreStore:
    return _service().store


def _not_found(exc: ChoreNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail={"message": str(exc)})


@app.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return "ChoreHub is running."


@app.get("/chores")
async def list_chores() -> list[ChoreDTO]:
    return [ChoreDTO.from_chore(c) for c in await _store().find_all()]


@app.get("/chores/due")
async def due_chores(user: str | None = None) -> list[ChoreDTO]:
    """Chores due or overdue today, optionally only those assigned to ``user``."""
    return [ChoreDTO.from_chore(c) for c in await _service().get_due_chores(user)]


@app.get("/chores/{chore_id}")
async def get_chore(chore_id: int) -> ChoreDTO:
    chore = await _store().find_by_id(chore_id)
    if chore is None:
        raise _not_found(ChoreNotFoundError("Chore", chore_id))
    return ChoreDTO.from_chore(chore)


@app.post("/chores", status_code=status.HTTP_201_CREATED)
async def create_chore(request: CreateChoreRequest) -> ChoreDTO:
    try:
        chore = await _service().create_chore(request)
    except ChoreValidationError as e:
        raise HTTPException(status_code=400, detail={"message": str(e)}) from e
    return ChoreDTO.from_chore(chore)


@app.post("/chores/{chore_id}/done")
async def mark_chore_done(chore_id: int) -> ChoreDTO:
    try:
        chore = await _service().mark_chore_as_done(chore_id)
    except ChoreNotFoundError as e:
        raise _not_found(e) from e
    return ChoreDTO.from_chore(chore)


@app.delete("/chores/{chore_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chore(chore_id: int) -> Response:
    try:
        await _service().delete_chore(chore_id)
    except ChoreNotFoundError as e:
        raise _not_found(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/users")
async def list_users() -> list[User]:
    return await _store().find_all_users()


@app.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(request: CreateUserRequest) -> User:
    if not request.name.strip():
        raise HTTPException(status_code=400, detail={"message": "User name cannot be empty"})
    if await _store().find_user_by_name(request.name) is not None:
        raise HTTPException(status_code=400, detail={"message": f"User '{request.name}' already exists"})
    return await _store().create_user(request.name, request.shortname)


class ApiServer:
    """Runs the FastAPI app under uvicorn inside the controller's event loop."""

    lp: str = "ApiServer:"
    running: bool = False
    start_task: asyncio.Task[None] | None = None

    def __init__(self, host: str | None = None, port: int | None = None) -> None:
        self.host: str = host or g.env.api_host
        self.port: int = port or g.env.api_port
        self.app = app
        log_config: dict[str, Any] = {"version": 1, "disable_existing_loggers": False}
        self.uvi_server = uvicorn.Server(
            config=uvicorn.Config(app, host=self.host, port=self.port, log_config=log_config, log_level="info"),
        )

    async def start(self) -> None:
        lp = f"{self.lp}start:"
        logger.info("%s Starting HTTP API on %s:%s", lp, self.host, self.port)
        self.running = True
        try:
            await self.uvi_server.serve()
        except asyncio.CancelledError:
            logger.info("%s HTTP API stopped", lp)
            raise
        except Exception:
            logger.exception("%s Error running HTTP API", lp)
        finally:
            self.running = False

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        logger.info("%s Stopping HTTP API...", lp)
        self.uvi_server.should_exit = True
        if self.start_task and not self.start_task.done():
            try:
                _ = await asyncio.wait_for(asyncio.shield(self.start_task), timeout=5)
            except (TimeoutError, asyncio.CancelledError):
                logger.warning("%s HTTP API did not exit in time, cancelling", lp)
                _ = self.start_task.cancel()
