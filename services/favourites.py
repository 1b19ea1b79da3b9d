import asyncio
import logging

from services.record_store import RecordStore

logger = logging.getLogger(__name__)

FAVORITES = "favorites"


class FavouritesTracker:
    """
    One user's favourited lender ids.
    The local set changes only after the store has accepted the matching insert or delete.
    """

    def __init__(self, store: RecordStore, user_id: str):
        self._store = store
        self.user_id = user_id
        self._ids: set[str] = set()
        self._lock = asyncio.Lock()

    @property
    def favourites(self) -> frozenset[str]:
        return frozenset(self._ids)

    async def load(self) -> frozenset[str]:
        rows = await self._store.select(FAVORITES, filters={"user_id": self.user_id})
        async with self._lock:
            self._ids = {row["lender_id"] for row in rows}
        return self.favourites

    def is_favourite(self, lender_id: str) -> bool:
        return lender_id in self._ids

    async def toggle(self, lender_id: str) -> bool:
        """Flip membership of lender_id; returns whether it is a favourite afterwards."""
        async with self._lock:
            if lender_id in self._ids:
                await self._store.delete_where(FAVORITES, {"user_id": self.user_id, "lender_id": lender_id})
                self._ids.discard(lender_id)
                logger.info("User %s unfavourited lender %s", self.user_id, lender_id)
                return False
            await self._store.insert(FAVORITES, {"user_id": self.user_id, "lender_id": lender_id})
            self._ids.add(lender_id)
            logger.info("User %s favourited lender %s", self.user_id, lender_id)
            return True

    def forget(self, lender_id: str) -> None:
        """Drop lender_id locally after its favourite rows were removed by a lender delete."""
        self._ids.discard(lender_id)
