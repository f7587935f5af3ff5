from .change_feed import ChangeEvent, ChangeFeed
from .live_query import LiveQuery

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "LiveQuery",
]
