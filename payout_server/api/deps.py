from fastapi import Depends, HTTPException, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from payout_server.config import RECEIPTS_DIR, REPORT_CACHE_SECONDS, load_api_tokens
from payout_server.db.session import ReadSessionLocal, SessionLocal
from payout_server.domain.context import OperatorContext
from payout_server.services.receipt_storage import ReceiptStorage

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db():
    """Primary session; every mutation goes through here."""
    async with SessionLocal() as db:
        yield db


async def get_read_db():
    """Session for reporting reads, possibly served by a lagging replica."""
    async with ReadSessionLocal() as db:
        yield db


def get_operator(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> OperatorContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No autenticado")
    operator = load_api_tokens().get(credentials.credentials)
    if not operator:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido")
    return OperatorContext(identity=operator)


REPORTING_CACHE_CONTROL = f"private, max-age={REPORT_CACHE_SECONDS}"


def reporting_cache(response: Response):
    response.headers["Cache-Control"] = REPORTING_CACHE_CONTROL


def get_receipt_storage() -> ReceiptStorage:
    return ReceiptStorage(RECEIPTS_DIR)
