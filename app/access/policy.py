"""Access policy evaluator.

Decides, without touching storage, whether an actor may perform an action on
a resource. Services call ``require`` before any read of protected data and
before every mutation; the database's own constraints are a second line, not
the authority.

Rules by role:

    action                 student       unverified admin    verified admin
    CREATE_TICKET          self only     no                  no
    READ_TICKET            owner only    same university     same university
    CHANGE_TICKET_STATUS   no            no                  same university
    POST_MESSAGE           owner only    no                  same university
    POST_ANNOUNCEMENT      no            no                  yes
    VERIFY_ADMIN           no            no                  same university
    VIEW_DIRECTORY         no            no                  same university
    MANAGE_FAQ             no            no                  yes

Anything the evaluator cannot make sense of (missing actor fields, unknown
action, wrong resource type) is denied.
"""

import enum
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from app.core.exceptions import ForbiddenError

STUDENT = "student"
ADMIN = "admin"


class Action(str, enum.Enum):
    CREATE_TICKET = "create_ticket"
    READ_TICKET = "read_ticket"
    CHANGE_TICKET_STATUS = "change_ticket_status"
    POST_MESSAGE = "post_message"
    POST_ANNOUNCEMENT = "post_announcement"
    VERIFY_ADMIN = "verify_admin"
    VIEW_DIRECTORY = "view_directory"
    MANAGE_FAQ = "manage_faq"


@dataclass(frozen=True)
class TicketResource:
    student_id: UUID
    university: str


@dataclass(frozen=True)
class ProfileResource:
    user_id: UUID
    university: str


@dataclass(frozen=True)
class UniversityScope:
    university: str


@dataclass(frozen=True)
class _Actor:
    user_id: UUID
    role: str
    university: str
    is_verified: bool

    @property
    def is_student(self) -> bool:
        return self.role == STUDENT

    @property
    def is_verified_admin(self) -> bool:
        return self.role == ADMIN and self.is_verified


def _normalize_actor(actor: Any) -> _Actor | None:
    if actor is None:
        return None
    user_id = getattr(actor, "user_id", None)
    role = getattr(actor, "role", None)
    university = getattr(actor, "university", None)
    is_verified = getattr(actor, "is_verified", False)

    if not isinstance(user_id, UUID):
        return None
    role = getattr(role, "value", role)
    if role not in (STUDENT, ADMIN):
        return None
    if not isinstance(university, str) or not university:
        return None
    return _Actor(
        user_id=user_id,
        role=role,
        university=university,
        is_verified=is_verified is True,
    )


def _same_university(actor: _Actor, resource: Any) -> bool:
    university = getattr(resource, "university", None)
    return isinstance(university, str) and university == actor.university


def _check_ticket(actor: _Actor, action: Action, resource: Any) -> bool:
    if not isinstance(resource, TicketResource):
        return False

    if action == Action.CREATE_TICKET:
        return actor.is_student and resource.student_id == actor.user_id

    if action in (Action.READ_TICKET, Action.POST_MESSAGE):
        if actor.is_student:
            return resource.student_id == actor.user_id
        if action == Action.POST_MESSAGE and not actor.is_verified_admin:
            return False
        return _same_university(actor, resource)

    if action == Action.CHANGE_TICKET_STATUS:
        return actor.is_verified_admin and _same_university(actor, resource)

    return False


def can_perform(actor: Any, action: Action, resource: Any = None) -> bool:
    """Return whether ``actor`` may perform ``action`` on ``resource``. Never raises."""
    try:
        normalized = _normalize_actor(actor)
        if normalized is None:
            return False

        if action in (
            Action.CREATE_TICKET,
            Action.READ_TICKET,
            Action.CHANGE_TICKET_STATUS,
            Action.POST_MESSAGE,
        ):
            return _check_ticket(normalized, action, resource)

        if action in (Action.POST_ANNOUNCEMENT, Action.MANAGE_FAQ):
            return normalized.is_verified_admin

        if action == Action.VERIFY_ADMIN:
            return (
                normalized.is_verified_admin
                and isinstance(resource, ProfileResource)
                and _same_university(normalized, resource)
            )

        if action == Action.VIEW_DIRECTORY:
            return (
                normalized.is_verified_admin
                and isinstance(resource, (UniversityScope, ProfileResource))
                and _same_university(normalized, resource)
            )
    except Exception:
        return False

    return False


def require(actor: Any, action: Action, resource: Any = None, message: str | None = None) -> None:
    """Raise ``ForbiddenError`` unless the policy allows the action."""
    if not can_perform(actor, action, resource):
        raise ForbiddenError(message) if message else ForbiddenError()
