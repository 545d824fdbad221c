# services/audit.py
import logging
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.models import AuditAction, SubscriptionAuditLog

logger = logging.getLogger(__name__)

AUDIT_LIST_LIMIT = 200


class AuditTrail:
    """Append-only subscription audit log."""

    def __init__(self, session: Session):
        self.session = session

    def append(
        self,
        action: Union[AuditAction, str],
        user_id: Optional[int] = None,
        company_id: Optional[int] = None,
        changed_by_user_id: Optional[int] = None,
        old_tier: Optional[str] = None,
        new_tier: Optional[str] = None,
        details: Optional[str] = None,
    ) -> Optional[SubscriptionAuditLog]:
        """
        Record one entry and commit it.

        Never raises: a failed write is rolled back and logged so the
        business operation that triggered it still completes.
        """
        entry = SubscriptionAuditLog(
            action=action.value if isinstance(action, AuditAction) else action,
            user_id=user_id,
            company_id=company_id,
            changed_by_user_id=changed_by_user_id,
            old_tier=old_tier,
            new_tier=new_tier,
            details=details,
        )
        try:
            self.session.add(entry)
            self.session.commit()
            self.session.refresh(entry)
            return entry
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"❌ Failed to write audit entry '{entry.action}' for user={user_id} company={company_id}")
            return None

    def list_for_company(self, company_id: int, limit: int = AUDIT_LIST_LIMIT) -> List[SubscriptionAuditLog]:
        return list(
            self.session.exec(
                select(SubscriptionAuditLog)
                .where(SubscriptionAuditLog.company_id == company_id)
                .order_by(SubscriptionAuditLog.created_at.desc(), SubscriptionAuditLog.id.desc())
                .limit(limit)
            ).all()
        )

    def list_for_user(self, user_id: int, limit: int = AUDIT_LIST_LIMIT) -> List[SubscriptionAuditLog]:
        return list(
            self.session.exec(
                select(SubscriptionAuditLog)
                .where(SubscriptionAuditLog.user_id == user_id)
                .order_by(SubscriptionAuditLog.created_at.desc(), SubscriptionAuditLog.id.desc())
                .limit(limit)
            ).all()
        )
