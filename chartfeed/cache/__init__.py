from .events import SeriesEvent, SeriesFetchFailedEvent, SeriesUpdatedEvent
from .keys import CacheEntry, SeriesKey
from .orchestrator import SeriesCache
from .subscription import Subscription

__all__ = [
    "CacheEntry",
    "SeriesCache",
    "SeriesEvent",
    "SeriesFetchFailedEvent",
    "SeriesKey",
    "SeriesUpdatedEvent",
    "Subscription",
]
