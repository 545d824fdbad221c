# activity_schema.py
from pydantic import BaseModel, Field, ConfigDict, TypeAdapter
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime


# ---------------------------
# Payload variants, one per action
# ---------------------------
class ProjectCreatedPayload(BaseModel):
    action: Literal["project_created"] = "project_created"
    title: str


class BoardCreatedPayload(BaseModel):
    action: Literal["board_created"] = "board_created"
    title: str
    project_id: Optional[int] = None


class TeamCreatedPayload(BaseModel):
    action: Literal["team_created"] = "team_created"
    name: str


class ObjectiveCreatedPayload(BaseModel):
    action: Literal["objective_created"] = "objective_created"
    title: str


class TaskCreatedPayload(BaseModel):
    action: Literal["task_created"] = "task_created"
    title: str
    board_id: int


class TaskAssignedPayload(BaseModel):
    action: Literal["task_assigned"] = "task_assigned"
    task_title: str
    assignee_ids: List[int] = Field(default_factory=list)


class MemberAddedPayload(BaseModel):
    action: Literal["member_added"] = "member_added"
    resource: Literal["board", "team", "objective"]
    member_id: int
    role: str = "member"


class SubscriptionChangedPayload(BaseModel):
    action: Literal["subscription_changed"] = "subscription_changed"
    old_tier: Optional[str] = None
    new_tier: str
    billing_cycle: str


ActivityPayload = Annotated[
    Union[
        ProjectCreatedPayload,
        BoardCreatedPayload,
        TeamCreatedPayload,
        ObjectiveCreatedPayload,
        TaskCreatedPayload,
        TaskAssignedPayload,
        MemberAddedPayload,
        SubscriptionChangedPayload,
    ],
    Field(discriminator="action"),
]

activity_payload_adapter = TypeAdapter(ActivityPayload)


class ActivityRead(BaseModel):
    id: int
    action: str
    user_id: int
    target_user_id: Optional[int] = None
    board_id: Optional[int] = None
    project_id: Optional[int] = None
    objective_id: Optional[int] = None
    task_id: Optional[int] = None
    team_id: Optional[int] = None
    payload: ActivityPayload
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
