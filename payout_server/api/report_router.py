from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.api.deps import get_db, get_operator
from payout_server.api.schemas import ReportStatusUpdate
from payout_server.domain.context import OperatorContext
from payout_server.services import report_service

router = APIRouter(dependencies=[Depends(get_operator)])


@router.get("/reports")
async def list_reports(
    status: Literal["all", "pending", "reviewing", "resolved", "dismissed"] = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.list_reports(db, status, page, limit)


@router.patch("/update-report/{report_id}")
async def update_report(
    report_id: int,
    body: ReportStatusUpdate,
    db: AsyncSession = Depends(get_db),
    operator: OperatorContext = Depends(get_operator),
):
    report = await report_service.update_report_status(
        db, operator, report_id, body.status, body.resolution_notes
    )
    return {
        "success": True,
        "message": "Reporte actualizado",
        "data": report_service.serialize_report(report),
    }


@router.get("/pending-reports-count")
async def pending_reports_count(db: AsyncSession = Depends(get_db)):
    return {"data": {"pending_count": await report_service.pending_reports_count(db)}}
