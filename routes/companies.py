# routes/companies.py
from fastapi import APIRouter, HTTPException, Depends
from sqlmodel import Session, select

from core.access import get_permission_service, require_access
from core.database import get_session
from core.security import get_current_user
from models.models import Company, CompanyPaymentInfo, User
from schemas.company_schema import CompanyWithPayment, CompanyPaymentInfoRead
from services.permissions import PermissionService

router = APIRouter(tags=["Companies"])


@router.get("/{company_id}", response_model=CompanyWithPayment)
def get_company(
    company_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    company = session.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    require_access(permissions.can_access_company(current_user.id, company_id), "company")

    info = session.exec(select(CompanyPaymentInfo).where(CompanyPaymentInfo.company_id == company_id)).first()
    data = CompanyWithPayment.model_validate(company)
    if info is not None:
        data.payment_info = CompanyPaymentInfoRead.model_validate(info)
    return data
