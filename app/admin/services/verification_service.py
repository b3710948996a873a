import logging
from uuid import UUID

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.access.policy import Action, ProfileResource, require
from app.auth.models.user import Role, UserRole
from app.auth.schemas.identity import Identity
from app.auth.services.identity_service import IdentityService
from app.core.events import USER_ROLES_TOPIC, publish_change
from app.core.exceptions import NotFoundError
from app.db.errors import storage_errors

logger = logging.getLogger(__name__)


class VerificationService:
    """Approval and rejection of administrator sign-ups.

    Only a verified admin of the same university may decide on a pending
    admin. Approval is idempotent; rejection removes the grant, after which
    the account can no longer sign in until it registers again.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _load_admin_grant(self, actor: Identity, target_id: UUID) -> UserRole:
        # actor must be a verified admin before anything about the target is revealed
        require(
            actor,
            Action.VERIFY_ADMIN,
            ProfileResource(user_id=actor.user_id, university=actor.university),
            "Only verified administrators can review administrator accounts",
        )

        grant = (
            self.db.query(UserRole)
            .filter(UserRole.user_id == target_id, UserRole.role == Role.ADMIN.value)
            .first()
        )
        if grant is None:
            raise NotFoundError("Administrator not found", resource="admin")

        require(
            actor,
            Action.VERIFY_ADMIN,
            ProfileResource(user_id=grant.user_id, university=grant.profile.university),
            "Administrator belongs to a different university",
        )
        return grant

    def _verify(self, actor: Identity, target_id: UUID) -> tuple[UserRole, bool]:
        grant = self._load_admin_grant(actor, target_id)
        if grant.is_verified:
            return grant, False

        grant.is_verified = True
        with storage_errors(self.db, "approve_admin"):
            self.db.commit()
        self.db.refresh(grant)
        logger.info("Admin %s approved by %s", target_id, actor.user_id)
        return grant, True

    def _delete_pending(self, actor: Identity, target_id: UUID) -> None:
        grant = self._load_admin_grant(actor, target_id)
        if grant.is_verified:
            raise NotFoundError("No pending administrator request", resource="admin")

        self.db.delete(grant)
        with storage_errors(self.db, "reject_admin"):
            self.db.commit()
        logger.info("Admin %s rejected by %s", target_id, actor.user_id)

    async def approve(self, actor: Identity, target_id: UUID) -> UserRole:
        grant, changed = await run_in_threadpool(self._verify, actor, target_id)
        if changed:
            await IdentityService.invalidate(target_id)
            await publish_change(USER_ROLES_TOPIC, kind="update", record_id=target_id)
        return grant

    async def reject(self, actor: Identity, target_id: UUID) -> None:
        await run_in_threadpool(self._delete_pending, actor, target_id)
        await IdentityService.invalidate(target_id)
        await publish_change(USER_ROLES_TOPIC, kind="delete", record_id=target_id)
