"""
CRUD orchestration shared by every entity kind.

An ``EntityService`` is instantiated once per kind. Each operation runs the
matching store call, turns a not-found signal into ``EntityNotFoundError`` and,
only after a mutation has succeeded, hands a change event to the fan-out
dispatcher. Store failures propagate as ``PersistenceError`` before any
fan-out happens.
"""

from __future__ import annotations

from typing import Any, Dict, List

from .database import EntityStore
from .entities import EntityKind
from .errors import EntityNotFoundError
from .fanout import FanoutDispatcher
from .models import ChangeEvent, ChangeEventType, MessageResponse


class EntityService:
    """
    Request-level operations for one entity kind.

    Holds no per-request state; a single instance serves concurrent requests.

    Attributes:
        kind: The entity kind served
        store: Persistence gateway for the kind
        dispatcher: Shared fan-out dispatcher
    """

    def __init__(self, kind: EntityKind, store: EntityStore, dispatcher: FanoutDispatcher) -> None:
        self.kind = kind
        self.store = store
        self.dispatcher = dispatcher

    def _not_found(self, entity_id: int) -> EntityNotFoundError:
        return EntityNotFoundError(self.kind.label, entity_id)

    def _fan_out(self, event_type: ChangeEventType, data: Dict[str, Any]) -> None:
        self.dispatcher.dispatch(self.kind, ChangeEvent(event=event_type, data=data))

    def list(self) -> List[Dict[str, Any]]:
        return self.store.get_all()

    def get(self, entity_id: int) -> Dict[str, Any]:
        entity = self.store.get_by_id(entity_id)
        if entity is None:
            raise self._not_found(entity_id)
        return entity

    def create(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        entity = self.store.create(attributes)
        self._fan_out(ChangeEventType.CREATE, entity)
        return entity

    def update(self, entity_id: int, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace the attributes of an existing entity.

        Raises:
            EntityNotFoundError: If no entity has this id (nothing is fanned out)
            PersistenceError: If the store fails (nothing is fanned out)
        """
        entity = self.store.update(entity_id, attributes)
        if entity is None:
            raise self._not_found(entity_id)
        self._fan_out(ChangeEventType.UPDATE, entity)
        return entity

    def delete(self, entity_id: int) -> MessageResponse:
        if not self.store.delete(entity_id):
            raise self._not_found(entity_id)
        self._fan_out(ChangeEventType.DELETE, {"id": entity_id})
        return MessageResponse(message=self.kind.deleted_message)
