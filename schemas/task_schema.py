# task_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime


class TaskCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str = Field(default="todo", max_length=20)
    priority: str = Field(default="medium", max_length=20)
    due_date: Optional[datetime] = None
    board_id: int
    assigned_user_ids: List[int] = Field(default_factory=list)
    assigned_team_id: Optional[int] = None

    @field_validator("assigned_user_ids", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class TaskRead(BaseModel):
    id: int
    title: str = Field(..., max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str
    priority: str
    due_date: Optional[datetime] = None
    board_id: int
    assigned_user_ids: List[int] = Field(default_factory=list)
    assigned_team_id: Optional[int] = None
    archived: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
