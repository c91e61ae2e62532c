"""
Issue authorization policy.

Every issue handler asks this module whether an actor may perform an
action, instead of re-implementing role checks per route.  The table
below is the whole policy:

=========  ===============  ===================  ==========  =====
action     customer (owner) customer (other)     technician  admin
=========  ===============  ===================  ==========  =====
list       own issues       -                    all         all
read       yes              no                   yes         yes
create     yes              n/a                  no          no
update     yes (no status)  no                   yes         yes
delete     yes              no                   no          yes
export     no               no                   no          yes
=========  ===============  ===================  ==========  =====
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from issuedesk.core.exceptions import Forbidden

logger = logging.getLogger(__name__)


class Role(str, Enum):
    CUSTOMER = "customer"
    TECHNICIAN = "technician"
    ADMIN = "admin"

    @classmethod
    def coerce(cls, value: object) -> "Role":
        """Map anything that is not a known role onto ``customer``."""
        try:
            return cls(value)
        except ValueError:
            return cls.CUSTOMER


class Action(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"


class Rule(Enum):
    ALLOW = "allow"
    OWNER = "owner"  # allowed only on the actor's own issues
    DENY = "deny"


@dataclass(frozen=True)
class Actor:
    """The authenticated identity behind a request, built from token claims."""

    id: str
    role: Role
    username: str
    email: str
    phone_number: str | None = None

    def owns(self, owner_id: object) -> bool:
        return canonical_id(owner_id) == self.id


def canonical_id(value: object) -> str:
    """Render an identifier in the one form used for comparisons."""
    return str(value).strip()


_TABLE: dict[Action, dict[Role, Rule]] = {
    Action.LIST: {Role.CUSTOMER: Rule.OWNER, Role.TECHNICIAN: Rule.ALLOW, Role.ADMIN: Rule.ALLOW},
    Action.READ: {Role.CUSTOMER: Rule.OWNER, Role.TECHNICIAN: Rule.ALLOW, Role.ADMIN: Rule.ALLOW},
    Action.CREATE: {Role.CUSTOMER: Rule.ALLOW, Role.TECHNICIAN: Rule.DENY, Role.ADMIN: Rule.DENY},
    Action.UPDATE: {Role.CUSTOMER: Rule.OWNER, Role.TECHNICIAN: Rule.ALLOW, Role.ADMIN: Rule.ALLOW},
    Action.DELETE: {Role.CUSTOMER: Rule.OWNER, Role.TECHNICIAN: Rule.DENY, Role.ADMIN: Rule.ALLOW},
    Action.EXPORT: {Role.CUSTOMER: Rule.DENY, Role.TECHNICIAN: Rule.DENY, Role.ADMIN: Rule.ALLOW},
}

# Message for a flat DENY, keyed by (action, role); falls back per action.
_DENY_MESSAGES: dict[tuple[Action, Role | None], str] = {
    (Action.CREATE, None): "Only customers can create issues.",
    (Action.DELETE, Role.TECHNICIAN): "Technicians cannot delete issues.",
    (Action.EXPORT, None): "Admin access required.",
}

_NOT_OWNER_MESSAGES: dict[Action, str] = {
    Action.READ: "You are not authorized to view this issue.",
    Action.UPDATE: "You are not authorized to update this issue.",
    Action.DELETE: "You are not authorized to delete this issue.",
}

STATUS_FIELD = "status"
STATUS_DENIED_MESSAGE = "Customers cannot change the status of an issue."

# Fields an update may carry; everything else on an issue is server-owned.
MUTABLE_FIELDS = frozenset({"title", "description", "location", "department", STATUS_FIELD})


def _deny(actor: Actor, action: Action, message: str) -> Forbidden:
    logger.info("Denied %s for user %s (%s): %s", action.value, actor.id, actor.role.value, message)
    return Forbidden(message)


def authorize(actor: Actor, action: Action, owner_id: object | None = None) -> None:
    """Raise ``Forbidden`` unless *actor* may perform *action*.

    *owner_id* is the owning user of the target issue; it is required for
    rules that depend on ownership and ignored otherwise.
    """
    rule = _TABLE[action][actor.role]
    if rule is Rule.ALLOW:
        return
    if rule is Rule.DENY:
        message = _DENY_MESSAGES.get((action, actor.role)) or _DENY_MESSAGES.get(
            (action, None), "You are not authorized to perform this action."
        )
        raise _deny(actor, action, message)
    if owner_id is None or not actor.owns(owner_id):
        raise _deny(
            actor,
            action,
            _NOT_OWNER_MESSAGES.get(action, "You are not authorized to perform this action."),
        )


def list_scope(actor: Actor) -> str | None:
    """Return the owner id a listing must be limited to, or ``None`` for all."""
    rule = _TABLE[Action.LIST][actor.role]
    if rule is Rule.DENY:
        raise _deny(actor, Action.LIST, "You are not authorized to list issues.")
    if rule is Rule.OWNER:
        return actor.id
    return None


def can_change_status(actor: Actor) -> bool:
    return actor.role in (Role.TECHNICIAN, Role.ADMIN)


def update_mask(actor: Actor, owner_id: object, changes: dict[str, Any]) -> dict[str, Any]:
    """Check an update request and return the field changes to apply.

    *changes* holds only the keys the client actually sent.  The check is
    all-or-nothing: if any part is refused, nothing is returned to apply.
    """
    authorize(actor, Action.UPDATE, owner_id)
    if STATUS_FIELD in changes and not can_change_status(actor):
        raise _deny(actor, Action.UPDATE, STATUS_DENIED_MESSAGE)
    return {field: value for field, value in changes.items() if field in MUTABLE_FIELDS}


def check_create(actor: Actor, fields: dict[str, Any]) -> None:
    """Creation is customer-only, and a new issue always starts ``OPEN``."""
    authorize(actor, Action.CREATE)
    if STATUS_FIELD in fields and not can_change_status(actor):
        raise _deny(actor, Action.CREATE, STATUS_DENIED_MESSAGE)
