"""Exceptions raised by the persistence and service layers."""

from __future__ import annotations


class PersistenceError(RuntimeError):
    """The relational store rejected or failed an operation."""


class EntityNotFoundError(LookupError):
    """No row exists for the requested identifier."""

    def __init__(self, label: str, entity_id: int) -> None:
        super().__init__(f"{label} not found")
        self.label = label
        self.entity_id = entity_id
