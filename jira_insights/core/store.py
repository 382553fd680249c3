"""File-backed key-value store for tickets: one JSON document per ticket key."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from .config import DEFAULT_STORE_PATH
from .errors import StoreError
from .mappers import ticket_from_record, ticket_to_record
from .models import TicketModel

logger = logging.getLogger(__name__)


class TicketStore:
    def __init__(self, base_path: str | Path = DEFAULT_STORE_PATH):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _ticket_path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StoreError(f"Invalid ticket key for storage: {key!r}")
        return self.base_path / f"{key}.json"

    def upsert(self, tickets: Iterable[TicketModel]) -> int:
        """Insert or replace tickets by key. Writing the same ticket twice is a no-op in effect."""
        written = 0
        for ticket in tickets:
            path = self._ticket_path(ticket.key)
            tmp = path.with_suffix(".json.tmp")
            try:
                tmp.write_text(json.dumps(ticket_to_record(ticket), indent=2, sort_keys=True))
                os.replace(tmp, path)
            except OSError as exc:
                raise StoreError(f"Could not write ticket {ticket.key}: {exc}") from exc
            written += 1
        logger.debug("Upserted %s ticket(s) into %s", written, self.base_path)
        return written

    def get(self, key: str) -> TicketModel | None:
        path = self._ticket_path(key)
        if not path.exists():
            return None
        try:
            record = json.loads(path.read_text())
            return ticket_from_record(record)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StoreError(f"Could not read ticket {key}: {exc}") from exc

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.base_path.glob("*.json"))

    def iter_tickets(self) -> Iterator[TicketModel]:
        for key in self.keys():
            ticket = self.get(key)
            if ticket is not None:
                yield ticket

    def all(self) -> list[TicketModel]:
        return list(self.iter_tickets())

    def delete(self, key: str) -> bool:
        path = self._ticket_path(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def count(self) -> int:
        return len(self.keys())
