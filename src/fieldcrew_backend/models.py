from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel


class ChangeEventType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @property
    def past_tense(self) -> str:
        return {"CREATE": "created", "UPDATE": "updated", "DELETE": "deleted"}[self.value]


class ChangeEvent(BaseModel):
    event: ChangeEventType
    data: Dict[str, Any]


class MessageResponse(BaseModel):
    message: str


class EntityKindInfo(BaseModel):
    name: str
    path: str
    topic: str
    broadcast_enabled: bool
    attributes: List[str]
