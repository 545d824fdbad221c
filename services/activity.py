# services/activity.py
import logging
from typing import Any, Dict, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from models.models import ActivityLog
from schemas.activity_schema import ActivityPayload, activity_payload_adapter

logger = logging.getLogger(__name__)


class ActivityService:
    """Writes typed activity entries; reads go through the permission feed."""

    def __init__(self, session: Session):
        self.session = session

    def record(
        self,
        user_id: int,
        payload: Union[ActivityPayload, Dict[str, Any]],
        target_user_id: Optional[int] = None,
        board_id: Optional[int] = None,
        project_id: Optional[int] = None,
        objective_id: Optional[int] = None,
        task_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Optional[ActivityLog]:
        # validates the variant for its action; a bad payload is a caller bug and raises
        payload = activity_payload_adapter.validate_python(
            payload if isinstance(payload, dict) else payload.model_dump()
        )
        entry = ActivityLog(
            action=payload.action,
            user_id=user_id,
            target_user_id=target_user_id,
            board_id=board_id,
            project_id=project_id,
            objective_id=objective_id,
            task_id=task_id,
            team_id=team_id,
            payload=payload.model_dump(mode="json"),
        )
        try:
            self.session.add(entry)
            self.session.commit()
            self.session.refresh(entry)
            return entry
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"❌ Failed to record activity '{payload.action}' for user {user_id}")
            return None

    @staticmethod
    def parse_payload(entry: ActivityLog) -> ActivityPayload:
        return activity_payload_adapter.validate_python(entry.payload)
