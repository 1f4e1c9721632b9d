import logging
from supabase import Client
from app.modules.reports.schemas import ReportCreate, ReportResolve, ReportResponse
from app.modules.trust.service import TrustService
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

OPEN_REPORT_STATUSES = ("pending", "under_review")


class ReportService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.trust = TrustService(supabase)

    def create_report(self, report: ReportCreate, reporter_id: str) -> ReportResponse:
        try:
            if report.reported_user_id == reporter_id:
                raise HTTPException(status_code=400, detail="You cannot report yourself")

            result = self.supabase.table("reports").insert({
                "reporter_id": reporter_id,
                "reported_user_id": report.reported_user_id,
                "reported_group_id": report.reported_group_id,
                "reason": report.reason,
                "description": report.description,
                "status": "pending",
                "created_at": datetime.now(timezone.utc).isoformat(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create report")
            logger.info(f"Report filed by {reporter_id}")
            return ReportResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_reports(self, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[ReportResponse]:
        try:
            query = self.supabase.table("reports").select("*")
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [ReportResponse(**r) for r in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def resolve_report(self, report_id: str, resolution: ReportResolve) -> ReportResponse:
        """Move an open report forward; resolving a user report records a violation"""
        try:
            update = {"status": resolution.status, "admin_notes": resolution.admin_notes}
            if resolution.status != "under_review":
                update["resolved_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("reports")\
                .update(update)\
                .eq("id", report_id)\
                .in_("status", list(OPEN_REPORT_STATUSES))\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="No open report with this id")
            report = ReportResponse(**result.data[0])

            if report.status == "resolved" and report.reported_user_id:
                self.trust.try_record_event(
                    report.reported_user_id,
                    "violation_reported",
                    reference_type="report",
                    reference_id=report.id,
                )
            logger.info(f"Report {report_id} marked {report.status}")
            return report
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
