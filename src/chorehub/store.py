"""In-process chore and user store with optional YAML persistence.

The store is the single source of truth for chore state; the MQTT layer only
reads from it, except for ``mark_done``. When a data file is configured the
whole store is rewritten after every mutation.
"""

from __future__ import annotations

import asyncio
import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from chorehub.exceptions import ChoreNotFoundError
from chorehub.logging_abstraction import get_logger
from chorehub.structs import Chore, ChoreHistory, User
from chorehub.time_utils import ensure_aware

logger = get_logger(__name__)


def _valid_entries[M: BaseModel](data: dict[str, Any], key: str, model: type[M], lp: str) -> list[M]:
    """Validate every entry under ``key``; invalid ones are logged and skipped."""
    entries: list[M] = []
    for raw in data.get(key) or []:
        try:
            entries.append(model.model_validate(raw))
        except ValueError:
            logger.exception("%s Skipping invalid %s entry: %s", lp, key, raw)
    return entries


class ChoreStore:
    lp: str = "store:"

    def __init__(self, data_file: str | Path | None = None) -> None:
        self.data_file: Path | None = Path(data_file).expanduser().resolve() if data_file else None
        self.chores: dict[int, Chore] = {}
        self.users: dict[int, User] = {}
        self.history: list[ChoreHistory] = []
        self._next_chore_id: int = 1
        self._next_user_id: int = 1
        self._lock = asyncio.Lock()

    # -- persistence -------------------------------------------------------

    def load(self) -> None:
        """Load the data file if one is configured and exists.

        Raises:
            yaml.YAMLError: the file is not valid YAML

        """
        lp = f"{self.lp}load:"
        if self.data_file is None or not self.data_file.exists():
            logger.debug("%s No data file to load", lp)
            return
        with self.data_file.open(encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        for user in _valid_entries(data, "users", User, lp):
            self.users[user.id] = user
        for chore in _valid_entries(data, "chores", Chore, lp):
            self.chores[chore.id] = chore
        self.history.extend(_valid_entries(data, "history", ChoreHistory, lp))

        self._next_chore_id = max(self.chores, default=0) + 1
        self._next_user_id = max(self.users, default=0) + 1
        logger.info(
            "%s Loaded chore data",
            lp,
            extra={"path": str(self.data_file), "chores": len(self.chores), "users": len(self.users)},
        )

    def _save(self) -> None:
        if self.data_file is None:
            return
        data = {
            "users": [u.model_dump(mode="json") for u in self.users.values()],
            "chores": [c.model_dump(mode="json") for c in self.chores.values()],
            "history": [h.model_dump(mode="json") for h in self.history],
        }
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.data_file.with_suffix(".tmp")
        with tmp_file.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        _ = tmp_file.replace(self.data_file)

    # -- users -------------------------------------------------------------

    async def create_user(self, name: str, shortname: str | None = None) -> User:
        async with self._lock:
            user = User(id=self._next_user_id, name=name, shortname=shortname)
            self._next_user_id += 1
            self.users[user.id] = user
            self._save()
            return user

    async def find_all_users(self) -> list[User]:
        return list(self.users.values())

    async def find_user_by_name(self, name: str) -> User | None:
        return next((u for u in self.users.values() if u.name == name), None)

    # -- chores ------------------------------------------------------------

    async def create(self, chore_data: dict[str, Any]) -> Chore:
        """Assign an id to ``chore_data`` and store the resulting chore."""
        async with self._lock:
            chore = Chore.model_validate({**chore_data, "id": self._next_chore_id})
            self._next_chore_id += 1
            self.chores[chore.id] = chore
            self._save()
            return chore

    async def save(self, chore: Chore) -> Chore:
        async with self._lock:
            if chore.id not in self.chores:
                raise ChoreNotFoundError("Chore", chore.id)
            self.chores[chore.id] = chore
            self._save()
            return chore

    async def find_all(self) -> list[Chore]:
        return list(self.chores.values())

    async def find_by_id(self, chore_id: int) -> Chore | None:
        return self.chores.get(chore_id)

    async def find_by_assignee(self, user_name: str) -> list[Chore]:
        return [c for c in self.chores.values() if c.assigned_user and c.assigned_user.name == user_name]

    async def find_due_before(self, threshold: datetime.datetime, user_name: str | None = None) -> list[Chore]:
        """Chores whose next due date lies strictly before ``threshold``."""
        threshold = ensure_aware(threshold)
        chores = await self.find_by_assignee(user_name) if user_name else await self.find_all()
        return [c for c in chores if c.next_due_date is not None and c.next_due_date < threshold]

    async def mark_done(self, chore_id: int, when: datetime.datetime | None = None) -> Chore | None:
        """Record a completion; None when no such chore exists."""
        async with self._lock:
            chore = self.chores.get(chore_id)
            if chore is None:
                return None
            self.history.append(chore.record_completion(when))
            self._save()
            return chore

    async def delete(self, chore_id: int) -> bool:
        async with self._lock:
            if self.chores.pop(chore_id, None) is None:
                return False
            self.history = [h for h in self.history if h.chore_id != chore_id]
            self._save()
            return True

    async def history_for(self, chore_id: int) -> list[ChoreHistory]:
        return [h for h in self.history if h.chore_id == chore_id]
