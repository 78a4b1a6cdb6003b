from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.api.deps import (
    get_db,
    get_operator,
    get_read_db,
    get_receipt_storage,
    reporting_cache,
    REPORTING_CACHE_CONTROL,
)
from payout_server.api.schemas import ExportStatus, PayoutStatusUpdate, PlatformFilter
from payout_server.domain.context import OperatorContext
from payout_server.domain.currency import Currency
from payout_server.domain.period import current_month, month_period
from payout_server.services import payout_service, reporting_service
from payout_server.services.receipt_storage import ReceiptStorage
from telegram_bot.notify import notify_payout

router = APIRouter(dependencies=[Depends(get_operator)])

STATUS_MESSAGES = {
    "completed": "Pago marcado como completado",
    "failed": "Pago marcado como fallido; las consultas vuelven a quedar pendientes",
    "cancelled": "Pago cancelado; las consultas vuelven a quedar pendientes",
}


@router.get("/monthly-payouts", dependencies=[Depends(reporting_cache)])
async def monthly_payouts(
    month: Optional[int] = None,
    year: Optional[int] = None,
    platform: PlatformFilter = "all",
    db: AsyncSession = Depends(get_read_db),
):
    if month is None or year is None:
        month, year = current_month()
    return await payout_service.monthly_payout_view(db, month, year, platform)


@router.post("/process-payout/{reader_id}")
async def process_payout(
    reader_id: int,
    background_tasks: BackgroundTasks,
    currency: Optional[Currency] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    operator: OperatorContext = Depends(get_operator),
):
    period = month_period(month, year)
    payout = await payout_service.process_payout(db, operator, reader_id, currency, period)
    reader = await payout_service.get_reader(db, reader_id)
    data = payout_service.serialize_payout(payout, reader)

    background_tasks.add_task(notify_payout, data, reader.display_name, operator.identity)
    return {
        "success": True,
        "message": f"Pago procesado para {reader.display_name}",
        "data": data,
    }


@router.patch("/update-payout-status/{payout_id}")
async def update_payout_status(
    payout_id: int,
    body: PayoutStatusUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    operator: OperatorContext = Depends(get_operator),
):
    payout, previous = await payout_service.update_payout_status(
        db,
        operator,
        payout_id,
        new_status=body.status,
        notes=body.notes,
        payment_date=body.payment_date,
        payment_method=body.payment_method,
        transaction_reference=body.transaction_reference,
    )
    reader = await payout_service.get_reader(db, payout.reader_id)
    data = payout_service.serialize_payout(payout, reader)

    if payout.status != previous:
        background_tasks.add_task(
            notify_payout, data, reader.display_name, operator.identity, previous
        )
        message = STATUS_MESSAGES.get(payout.status, "Estado actualizado")
    else:
        message = "Datos del pago actualizados"
    return {"success": True, "message": message, "data": data}


@router.post("/upload-payout-receipt/{payout_id}")
async def upload_payout_receipt(
    payout_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: ReceiptStorage = Depends(get_receipt_storage),
):
    content = await file.read()
    receipt_url = await payout_service.attach_receipt(
        db, payout_id, file.filename, content, storage
    )
    return {
        "success": True,
        "message": "Comprobante subido",
        "data": {"receipt_url": receipt_url},
    }


@router.get("/payout-history", dependencies=[Depends(reporting_cache)])
async def payout_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    platform: PlatformFilter = "all",
    readerId: Optional[int] = None,
    currency: Optional[Currency] = None,
    db: AsyncSession = Depends(get_read_db),
):
    return await payout_service.payout_history(
        db, page=page, limit=limit, platform=platform, reader_id=readerId, currency=currency
    )


@router.get("/pending-payouts", dependencies=[Depends(reporting_cache)])
async def pending_payouts(
    currency: Optional[Currency] = None,
    db: AsyncSession = Depends(get_read_db),
):
    return await payout_service.pending_payouts(db, currency)


@router.get("/export-payouts")
async def export_payouts(
    month: int,
    year: int,
    status: ExportStatus = "all",
    db: AsyncSession = Depends(get_read_db),
):
    content = await reporting_service.export_payouts(db, month, year, status)
    filename = f"pagos_{year}_{month:02d}_{status}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": REPORTING_CACHE_CONTROL,
        },
    )
