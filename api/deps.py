from fastapi import Request

from services.favourites import FavouritesTracker
from services.lender_repository import LenderRepository
from services.record_store import RecordStore
from services.users import UserDirectory


def get_repository(request: Request) -> LenderRepository:
    return request.app.state.repository


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_user_directory(request: Request) -> UserDirectory:
    return request.app.state.users


def get_favourite_trackers(request: Request) -> dict[str, FavouritesTracker]:
    return request.app.state.favourites


async def get_favourites(request: Request, user_id: str) -> FavouritesTracker:
    """Tracker for user_id, seeded from the store the first time the user is seen."""
    trackers = get_favourite_trackers(request)
    tracker = trackers.get(user_id)
    if tracker is None:
        store = get_store(request)
        await store.select_one("users", user_id)
        tracker = FavouritesTracker(store, user_id)
        await tracker.load()
        tracker = trackers.setdefault(user_id, tracker)
    return tracker
