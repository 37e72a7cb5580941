"""Declarative base and write-once guards shared by all models."""

from typing import Callable, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import declarative_base

from agencyflow.core.errors import ImmutableRecordError

Base = declarative_base()


def append_only(entity_type: str, *, when: Optional[Callable] = None):
    """Class decorator forbidding ORM updates and deletes of a model.

    With ``when`` given, the guard applies only to rows for which
    ``when(target)`` is true, evaluated against the persisted values.
    Migration 0002 installs the matching database triggers for PostgreSQL.
    """
    def decorator(model):
        def _guard(operation: str):
            def listener(mapper, connection, target):
                if when is None or when(target):
                    raise ImmutableRecordError(entity_type, operation)
            return listener

        event.listen(model, "before_update", _guard("update"))
        event.listen(model, "before_delete", _guard("delete"))
        return model
    return decorator


def persisted_value(target, attribute: str):
    """Value of ``attribute`` as last loaded from the database."""
    history = inspect(target).attrs[attribute].history
    if history.deleted:
        return history.deleted[0]
    return getattr(target, attribute)
