# board_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime


class BoardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    project_id: Optional[int] = None
    assigned_user_ids: List[int] = Field(default_factory=list)
    team_ids: List[int] = Field(default_factory=list)

    @field_validator("assigned_user_ids", "team_ids", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class BoardRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    project_id: Optional[int] = None
    creator_id: int
    company_id: Optional[int] = None
    assigned_user_ids: List[int] = Field(default_factory=list)
    team_ids: List[int] = Field(default_factory=list)
    archived: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BoardMemberCreate(BaseModel):
    user_id: int
    role: str = Field(default="member", max_length=20)


class BoardMemberRead(BaseModel):
    id: int
    board_id: int
    user_id: int
    role: str
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)
