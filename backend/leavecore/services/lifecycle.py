"""Leave request transition table.

Every status change goes through ``ensure_transition``; no other code decides
whether a transition is legal.
"""

from __future__ import annotations

import enum
from typing import NamedTuple

from leavecore.exceptions import InvalidTransitionError
from leavecore.models.enums import LeaveStatus


class LeaveTransition(enum.StrEnum):
    SUBMIT = "SUBMIT"
    EDIT = "EDIT"
    RESUBMIT = "RESUBMIT"
    APPROVE = "APPROVE"
    RETURN = "RETURN"
    CANCEL = "CANCEL"


class _Rule(NamedTuple):
    sources: frozenset[LeaveStatus]
    target: LeaveStatus
    verb: str


TRANSITIONS: dict[LeaveTransition, _Rule] = {
    LeaveTransition.SUBMIT: _Rule(frozenset({LeaveStatus.DRAFT}), LeaveStatus.SUBMITTED, "submitted"),
    LeaveTransition.EDIT: _Rule(frozenset({LeaveStatus.RETURNED}), LeaveStatus.RETURNED, "edited"),
    LeaveTransition.RESUBMIT: _Rule(frozenset({LeaveStatus.RETURNED}), LeaveStatus.SUBMITTED, "resubmitted"),
    LeaveTransition.APPROVE: _Rule(frozenset({LeaveStatus.SUBMITTED}), LeaveStatus.APPROVED, "approved"),
    LeaveTransition.RETURN: _Rule(frozenset({LeaveStatus.SUBMITTED}), LeaveStatus.RETURNED, "returned"),
    LeaveTransition.CANCEL: _Rule(
        frozenset({LeaveStatus.SUBMITTED, LeaveStatus.RETURNED}), LeaveStatus.CANCELLED, "cancelled"
    ),
}


def can_transition(status: LeaveStatus | str, transition: LeaveTransition) -> bool:
    return LeaveStatus(status) in TRANSITIONS[transition].sources


def ensure_transition(status: LeaveStatus | str, transition: LeaveTransition) -> LeaveStatus:
    """Return the target status, or raise if ``transition`` is not allowed from ``status``."""
    current = LeaveStatus(status)
    rule = TRANSITIONS[transition]
    if current not in rule.sources:
        raise InvalidTransitionError(f"{current.value.capitalize()} requests cannot be {rule.verb}")
    return rule.target


def holds_reservation(status: LeaveStatus | str) -> bool:
    """Whether a request in this status has days reserved as pending."""
    return LeaveStatus(status) == LeaveStatus.SUBMITTED
