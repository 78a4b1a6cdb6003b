"""Import every model so ``Base.metadata`` knows all tables."""

from payout_server.models.reader import Reader  # noqa: F401
from payout_server.models.consultation_session import ConsultationSession  # noqa: F401
from payout_server.models.payout import Payout, PayoutItem  # noqa: F401
from payout_server.models.platform_payment import PlatformPayment  # noqa: F401
from payout_server.models.report import Report  # noqa: F401
from payout_server.db.base_class import Base  # noqa: F401
