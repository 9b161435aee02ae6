import logging

from nearest_road_segment import MatchResult, SpeedLimitMatcher
from segment_store import SegmentStore, create_default_segments
from speed_limit_config import SpeedLimitConfig

logger = logging.getLogger(__name__)


class SpeedLimitService:
    """
    Owns the segment store and the matcher. Construct one at startup and
    pass it to whatever consumes speed limits.
    """

    def __init__(self, config: SpeedLimitConfig = None, store: SegmentStore = None):
        self.config = config or SpeedLimitConfig()
        self._store = store
        self._matcher = None
        if store is not None:
            self._matcher = self._make_matcher(store)

    @property
    def is_ready(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> SegmentStore:
        return self.initialize()

    def _make_matcher(self, store):
        return SpeedLimitMatcher(
            store,
            max_distance_km=self.config.max_distance_km,
            default_speed_limit=self.config.default_speed_limit_kmh,
        )

    def initialize(self) -> SegmentStore:
        """Load the dataset once. Later calls return the already loaded store."""
        if self._store is not None:
            logger.debug("Speed limit service already initialized")
            return self._store

        logger.info("Initializing speed limit service from %s", self.config.dataset_path)
        try:
            store = SegmentStore.from_file(self.config.dataset_path, self.config.fallback_speed_limit_kmh)
        except Exception:
            logger.exception("Error initializing speed limit service, using default segments")
            store = SegmentStore(create_default_segments(), from_fallback=True)

        self._store = store
        self._matcher = self._make_matcher(store)
        logger.info("Speed limit service ready with %d segments", len(store))
        return store

    def lookup(self, point) -> MatchResult:
        """Speed limit at a (longitude, latitude) point."""
        self.initialize()
        return self._matcher.lookup(point)

    def lookup_sample(self, sample) -> MatchResult:
        self.initialize()
        return self._matcher.lookup_sample(sample)
