"""In process cache of the served description listings."""
import logging
import threading

import flask

logger = logging.getLogger(__name__)

EXTENSION_KEY = "harvest_tracking.listing_cache"


class ListingCache:
    """
    Serialized listings keyed by their query filters.
    Every write to descriptions calls invalidate so the next read refetches.

    A reader takes the generation before querying and hands it back to set:
    a listing read before an invalidation is never stored.
    """

    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def generation(self):
        with self._lock:
            return self._generation

    def get(self, key):
        with self._lock:
            return self._entries.get(key)

    def set(self, key, value, generation):
        """
        Stores value unless the cache was invalidated since generation was taken.
        Returns True if stored.
        """
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Listing {key} read at generation {generation} is stale, not cached")
                return False
            self._entries[key] = value
            return True

    def invalidate(self):
        with self._lock:
            self._entries.clear()
            self._generation += 1
            generation = self._generation
        logger.debug(f"Description listings invalidated, generation {generation}")

    def init_app(self, app):
        app.extensions[EXTENSION_KEY] = self

    def __len__(self):
        with self._lock:
            return len(self._entries)


def get_listing_cache(app=None):
    if app is None:
        app = flask.current_app
    return app.extensions[EXTENSION_KEY]


def invalidate_descriptions():
    get_listing_cache().invalidate()
