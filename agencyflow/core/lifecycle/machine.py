"""State machine over a ``Lifecycle`` allow-list.

``StateMachine`` validates a transition in memory. ``apply_transition``
persists it with a compare-and-swap UPDATE so that two callers racing on the
same row cannot both succeed.
"""

from enum import Enum
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from agencyflow.core.errors import ForbiddenError, InvalidStateError, ValidationError
from .states import Lifecycle, TransitionRule


class StateMachine:
    """
    Validates transitions for one entity.

    Args:
        lifecycle: Allow-list for the entity type
        current_state: Current state of the entity
        permissions: Optional checker for rules carrying ``requires_permission``
    """

    def __init__(self, lifecycle: Lifecycle, current_state: Any, *, permissions=None):
        self.lifecycle = lifecycle
        self._state = lifecycle.state_type(current_state)
        self.permissions = permissions

    @property
    def state(self) -> Enum:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in self.lifecycle.terminal_states

    def can_perform(self, transition: Enum) -> bool:
        """Check if a transition can be performed from current state."""
        rule = self.lifecycle.get_transition_rule(self._state, transition)
        if rule is None:
            return False
        if rule.requires_permission and self.permissions is not None:
            return self.permissions.has_permission(rule.requires_permission)
        return True

    def get_available_transitions(self) -> list:
        return [t for t in self.lifecycle.transition_type if self.can_perform(t)]

    def transition(self, transition: Enum, *, comment: Optional[str] = None) -> TransitionRule:
        """
        Validate a transition and advance the in-memory state.

        Returns:
            The matched rule

        Raises:
            InvalidStateError: If the transition is not allowed from the current state
            ForbiddenError: If the rule requires a permission the caller lacks
            ValidationError: If the rule requires a comment and none was given
        """
        rule = self.lifecycle.get_transition_rule(self._state, transition)
        if rule is None:
            raise InvalidStateError(
                f"Cannot {transition.value} {self.lifecycle.entity_type} in state {self._state.value}",
                current_state=self._state.value,
                attempted=transition.value,
            )

        if rule.requires_permission and self.permissions is not None:
            if not self.permissions.has_permission(rule.requires_permission):
                raise ForbiddenError(
                    f"Permission denied: requires {rule.requires_permission}",
                    permission=rule.requires_permission,
                )

        if rule.requires_comment and not (comment and comment.strip()):
            raise ValidationError(
                f"A comment is required to {transition.value} a {self.lifecycle.entity_type}",
                field="comment",
            )

        self._state = rule.to_state
        return rule


def apply_transition(db: Session, entity, rule: TransitionRule, **values) -> None:
    """
    Persist ``rule`` on ``entity`` only if its stored status still matches.

    Extra column values are written in the same statement.

    Raises:
        InvalidStateError: If another writer changed the status first
    """
    model = type(entity)
    result = db.execute(
        update(model)
        .where(model.id == entity.id, model.status == rule.from_state.value)
        .values(status=rule.to_state.value, **values)
        .execution_options(synchronize_session=False)
    )
    db.refresh(entity)
    if result.rowcount != 1:
        raise InvalidStateError(
            f"{model.__name__} {entity.id} changed concurrently; "
            f"expected {rule.from_state.value}, found {entity.status}",
            current_state=entity.status,
            attempted=rule.transition.value,
        )


def transition_entity(
    db: Session,
    lifecycle: Lifecycle,
    entity,
    transition: Enum,
    *,
    permissions=None,
    comment: Optional[str] = None,
    **values,
) -> TransitionRule:
    """Validate and persist a transition in one call."""
    machine = StateMachine(lifecycle, entity.status, permissions=permissions)
    rule = machine.transition(transition, comment=comment)
    apply_transition(db, entity, rule, **values)
    return rule
