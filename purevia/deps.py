from purevia.config import settings
from purevia.ledger import make_ledger
from purevia.lifecycle import LifecycleCoordinator
from purevia.mailer import make_mailer
from purevia.notifications import Notifier
from purevia.otp import make_otp_registry
from purevia.store import OrderStore

_coordinator: LifecycleCoordinator | None = None


def get_coordinator() -> LifecycleCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = LifecycleCoordinator(
            otps=make_otp_registry(settings),
            store=OrderStore(settings.orders_file),
            ledger=make_ledger(settings),
            notifier=Notifier(make_mailer(settings), admin_email=settings.admin_email),
        )
    return _coordinator
