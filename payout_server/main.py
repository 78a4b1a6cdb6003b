import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from payout_server.api import finance_router, payout_router, reader_router, report_router
from payout_server.api.errors import register_error_handlers
from payout_server.config import CORS_ORIGINS, LOG_LEVEL, RECEIPTS_DIR
from payout_server.services.receipt_storage import PUBLIC_PREFIX

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Tarot Payouts Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Receipts are written on first upload; the directory may not exist yet
app.mount(PUBLIC_PREFIX, StaticFiles(directory=RECEIPTS_DIR, check_dir=False), name="receipts")

API_PREFIX = "/admin-dashboard"

app.include_router(payout_router.router, prefix=API_PREFIX, tags=["Payouts"])
app.include_router(finance_router.router, prefix=API_PREFIX, tags=["Finances"])
app.include_router(reader_router.router, prefix=API_PREFIX, tags=["Tarotistas"])
app.include_router(report_router.router, prefix=API_PREFIX, tags=["Reports"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}
