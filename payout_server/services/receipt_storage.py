"""Local file storage for payout receipts, served under ``/receipts``."""

import logging
import uuid
from pathlib import Path

from payout_server.config import RECEIPT_MAX_BYTES, RECEIPTS_DIR
from payout_server.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".png", ".jpg", ".jpeg", ".webp"}
PUBLIC_PREFIX = "/receipts"


class ReceiptStorage:
    def __init__(self, root: Path = RECEIPTS_DIR, max_bytes: int = RECEIPT_MAX_BYTES):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def validate(self, filename: str, content: bytes) -> str:
        extension = Path(filename or "").suffix.lower()
        if extension not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                "Formato de comprobante no permitido; usar "
                + ", ".join(sorted(ext.lstrip(".") for ext in ALLOWED_EXTENSIONS))
            )
        if not content:
            raise ValidationError("El comprobante está vacío")
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"El comprobante supera el máximo de {self.max_bytes} bytes"
            )
        return extension

    def save(self, payout_id: int, filename: str, content: bytes) -> str:
        """Write the file and return its public URL path."""
        extension = self.validate(filename, content)
        relative = Path("payouts") / str(payout_id) / f"{uuid.uuid4().hex}{extension}"
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.info("Stored receipt for payout %s at %s", payout_id, target)
        return f"{PUBLIC_PREFIX}/{relative.as_posix()}"

    def delete(self, receipt_url: str) -> None:
        """Remove a stored receipt given the URL :meth:`save` returned."""
        relative = receipt_url[len(PUBLIC_PREFIX):].lstrip("/")
        target = self.root / relative
        if target.is_file():
            target.unlink()
            logger.info("Removed receipt %s", target)
