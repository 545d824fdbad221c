# project_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    member_ids: List[int] = Field(default_factory=list)
    team_ids: List[int] = Field(default_factory=list)
    # creator_id and company_id are set server-side

    @field_validator("member_ids", "team_ids", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class ProjectRead(BaseModel):
    id: int
    title: str = Field(..., max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    creator_id: int
    company_id: Optional[int] = None
    member_ids: List[int] = Field(default_factory=list)
    team_ids: List[int] = Field(default_factory=list)
    archived: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
