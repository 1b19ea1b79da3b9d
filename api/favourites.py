from fastapi import APIRouter, Depends, HTTPException

from services.favourites import FavouritesTracker
from services.lender_repository import LenderRepository
from api.deps import get_favourites, get_repository

router = APIRouter(prefix="/api/users/{user_id}/favourites", tags=["favourites"])


@router.get("", response_model=dict)
async def list_favourites(tracker: FavouritesTracker = Depends(get_favourites)):
    return {"userId": tracker.user_id, "lenderIds": sorted(tracker.favourites)}


@router.post("/{lender_id}/toggle", response_model=dict)
async def toggle_favourite(
    lender_id: str,
    tracker: FavouritesTracker = Depends(get_favourites),
    repo: LenderRepository = Depends(get_repository),
):
    # Removing a stale favourite is allowed even if the lender has since gone
    if repo.get_by_id(lender_id) is None and not tracker.is_favourite(lender_id):
        raise HTTPException(status_code=404, detail="Lender not found")
    favourite = await tracker.toggle(lender_id)
    return {"lenderId": lender_id, "isFavourite": favourite}
