from .analytics import AnalyticsAggregator
from .coordinator import SessionCoordinator, SessionRegistry
from .ledger import ConversationLedger, current_millis

__all__ = [
    "AnalyticsAggregator",
    "ConversationLedger",
    "SessionCoordinator",
    "SessionRegistry",
    "current_millis",
]
