from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.api.deps import get_operator, get_read_db, reporting_cache
from payout_server.domain.currency import Currency
from payout_server.domain.period import current_month
from payout_server.services import reporting_service

router = APIRouter(dependencies=[Depends(get_operator), Depends(reporting_cache)])


@router.get("/finances")
async def finances(
    month: Optional[int] = None,
    year: Optional[int] = None,
    currency: Optional[Currency] = None,
    db: AsyncSession = Depends(get_read_db),
):
    if month is None or year is None:
        month, year = current_month()
    return {"data": await reporting_service.finances(db, month, year, currency)}


@router.get("/overview")
async def overview(
    month: Optional[int] = None,
    year: Optional[int] = None,
    currency: Currency = Currency.USD,
    db: AsyncSession = Depends(get_read_db),
):
    if month is None or year is None:
        month, year = current_month()
    return {"data": await reporting_service.overview(db, month, year, currency)}
