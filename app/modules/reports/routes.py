from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_service_supabase
from app.core.dependencies import get_current_user, require_super_user
from app.modules.auth.tokens import SessionClaims
from app.modules.reports.schemas import ReportCreate, ReportResolve, ReportResponse
from app.modules.reports.service import ReportService
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/reports", tags=["reports"])


def get_report_service(supabase: Client = Depends(get_service_supabase)) -> ReportService:
    return ReportService(supabase)


@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(
    report: ReportCreate,
    current_user: SessionClaims = Depends(get_current_user),
    service: ReportService = Depends(get_report_service)
):
    return service.create_report(report, current_user.sub)


@router.get("", response_model=List[ReportResponse])
async def list_reports(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: SessionClaims = Depends(require_super_user),
    service: ReportService = Depends(get_report_service)
):
    return service.list_reports(status=status, limit=limit, offset=offset)


@router.patch("/{report_id}", response_model=ReportResponse)
async def resolve_report(
    report_id: str,
    resolution: ReportResolve,
    admin: SessionClaims = Depends(require_super_user),
    service: ReportService = Depends(get_report_service)
):
    return service.resolve_report(report_id, resolution)
