# company_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime


class CompanyRead(BaseModel):
    id: int
    name: str
    invite_code: str
    is_paused: bool = False
    pause_reason: Optional[str] = None
    paused_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompanyPaymentInfoRead(BaseModel):
    company_id: int
    subscription_tier: str
    subscription_status: str
    billing_cycle: str
    subscription_start_date: datetime
    subscription_end_date: Optional[datetime] = None
    billing_name: Optional[str] = Field(default=None, max_length=100)
    billing_email: Optional[str] = Field(default=None, max_length=100)
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompanyWithPayment(CompanyRead):
    payment_info: Optional[CompanyPaymentInfoRead] = None


class PauseRequest(BaseModel):
    pause_reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("pause_reason")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A reason for pausing is required")
        return v
