from chartfeed.events import DomainEvent, event

from .keys import SeriesKey


@event
class SeriesEvent(DomainEvent):
    """Base for events about one cached chart."""

    key: SeriesKey


@event
class SeriesUpdatedEvent(SeriesEvent):
    """A fetch for ``key`` succeeded and replaced the cached series."""

    candle_count: int
    generation: int


@event
class SeriesFetchFailedEvent(SeriesEvent):
    """A fetch for ``key`` failed; the previous series was kept."""

    error: str
    has_cached_series: bool
