"""Error taxonomy shared by services and the HTTP layer.

Each class carries the HTTP status the API answers with, so routers never
have to translate exceptions one by one.
"""


class PayoutError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PayoutError):
    """Rejected input; nothing was mutated and the call may be retried once fixed."""

    status_code = 400


class InvalidTransition(ValidationError):
    def __init__(self, machine: str, current: str, target: str):
        super().__init__(
            f"Transición de {machine} inválida: {current} -> {target}"
        )
        self.current = current
        self.target = target


class ConflictError(PayoutError):
    """State changed under the caller; re-fetch before retrying."""

    status_code = 409


class NoPendingEarnings(ConflictError):
    def __init__(self, reader_id: int, currency: str):
        super().__init__(
            f"El tarotista {reader_id} no tiene ganancias pendientes en {currency}"
        )
        self.reader_id = reader_id
        self.currency = currency


class NotFoundError(PayoutError):
    status_code = 404


class UpstreamError(PayoutError):
    """Persistence layer unavailable; safe to retry with backoff."""

    status_code = 503
