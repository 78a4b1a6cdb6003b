"""Moderation reports; same state machine shape as payouts."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.domain.context import OperatorContext
from payout_server.domain.state_machine import REPORT_PENDING, REPORT_STATES
from payout_server.errors import NotFoundError
from payout_server.models.registry import Report
from payout_server.services.pagination import normalize_page, pagination_meta

logger = logging.getLogger(__name__)


def serialize_report(report: Report) -> dict:
    return {
        "id": report.id,
        "reporter_id": report.reporter_id,
        "reported_id": report.reported_id,
        "thread_id": report.thread_id,
        "reason": report.reason,
        "description": report.description,
        "status": report.status,
        "reviewed_by": report.reviewed_by,
        "reviewed_at": report.reviewed_at,
        "resolution_notes": report.resolution_notes,
        "created_at": report.created_at,
        "updated_at": report.updated_at,
    }


async def list_reports(
    db: AsyncSession, status: Optional[str] = None, page: Optional[int] = 1, limit: Optional[int] = None
) -> dict:
    page, limit = normalize_page(page, limit)
    filters = []
    if status not in (None, "", "all"):
        filters.append(Report.status == REPORT_STATES.validate_state(status))

    total = (await db.execute(select(func.count(Report.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Report)
        .where(*filters)
        .order_by(Report.created_at.desc(), Report.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "data": [serialize_report(r) for r in result.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }


async def update_report_status(
    db: AsyncSession,
    operator: OperatorContext,
    report_id: int,
    status: str,
    resolution_notes: Optional[str] = None,
) -> Report:
    report = await db.get(Report, report_id)
    if report is None:
        raise NotFoundError(f"Reporte {report_id} no encontrado")

    REPORT_STATES.assert_transition(report.status, status)
    previous = report.status
    report.status = status
    report.reviewed_by = operator.identity
    report.reviewed_at = datetime.utcnow()
    if resolution_notes is not None:
        report.resolution_notes = resolution_notes
    await db.commit()

    logger.info("Report %s: %s -> %s by %s", report.id, previous, status, operator.identity)
    return report


async def pending_reports_count(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Report.id)).where(Report.status == REPORT_PENDING)
    )
    return result.scalar() or 0
