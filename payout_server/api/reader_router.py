from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.api.deps import get_db, get_operator, get_read_db, reporting_cache
from payout_server.api.schemas import ReaderCurrencyUpdate, ReaderStatusUpdate
from payout_server.domain.currency import Currency, platform_for
from payout_server.services import reader_service

router = APIRouter(dependencies=[Depends(get_operator)])


@router.get("/tarotistas")
async def list_tarotistas(
    search: Optional[str] = None,
    status: Literal["all", "active", "inactive"] = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await reader_service.list_readers(db, search, status, page, limit)


@router.get("/tarotista/{reader_id}", dependencies=[Depends(reporting_cache)])
async def tarotista_detail(
    reader_id: int,
    currency: Optional[Currency] = None,
    db: AsyncSession = Depends(get_read_db),
):
    return {"data": await reader_service.reader_detail(db, reader_id, currency)}


@router.patch("/tarotista/{reader_id}/currency")
async def update_tarotista_currency(
    reader_id: int, body: ReaderCurrencyUpdate, db: AsyncSession = Depends(get_db)
):
    reader = await reader_service.update_reader_currency(db, reader_id, body.preferred_currency)
    platform = platform_for(reader.preferred_currency).value
    return {
        "success": True,
        "message": f"Moneda actualizada a {reader.preferred_currency}; los próximos pagos salen por {platform}",
        "data": {"preferred_currency": reader.preferred_currency, "platform": platform},
    }


@router.patch("/tarotista/{reader_id}/status")
async def update_tarotista_status(
    reader_id: int, body: ReaderStatusUpdate, db: AsyncSession = Depends(get_db)
):
    reader = await reader_service.update_reader_status(db, reader_id, body.status)
    return {"success": True, "message": "Estado actualizado", "data": {"new_status": reader.status}}
