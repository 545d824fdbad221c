# user_schema.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import datetime


class UserRead(BaseModel):
    id: int
    username: str = Field(..., max_length=50)
    email: EmailStr
    company_id: Optional[int] = None
    is_company_admin: bool = False
    is_hyper_admin: bool = False
    subscription_tier: str
    subscription_billing_cycle: str
    subscription_expires_at: Optional[datetime] = None
    is_active: bool = True
    is_paused: bool = False
    pause_reason: Optional[str] = None
    paused_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
