# objective_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime


class ObjectiveCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    project_id: Optional[int] = None
    team_id: Optional[int] = None
    user_ids: List[int] = Field(default_factory=list)

    @field_validator("user_ids", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class ObjectiveRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    creator_id: int
    company_id: Optional[int] = None
    project_id: Optional[int] = None
    team_id: Optional[int] = None
    user_ids: List[int] = Field(default_factory=list)
    archived: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
