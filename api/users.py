from fastapi import APIRouter, Depends, HTTPException

from schemas.user import LoginRequest, UserCreate
from services.favourites import FavouritesTracker
from services.users import UserDirectory
from api.deps import get_favourite_trackers, get_user_directory

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[dict])
async def list_users(users: UserDirectory = Depends(get_user_directory)):
    return [u.model_dump(mode="json", by_alias=True) for u in await users.list_users()]


@router.post("", response_model=dict, status_code=201)
async def add_user(body: UserCreate, users: UserDirectory = Depends(get_user_directory)):
    user = await users.add_user(body.username, body.password, body.is_admin)
    return user.model_dump(mode="json", by_alias=True)


@router.post("/login", response_model=dict)
async def login(body: LoginRequest, users: UserDirectory = Depends(get_user_directory)):
    user = await users.authenticate(body.username, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return user.model_dump(mode="json", by_alias=True)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    users: UserDirectory = Depends(get_user_directory),
    trackers: dict[str, FavouritesTracker] = Depends(get_favourite_trackers),
):
    await users.delete_user(user_id)
    trackers.pop(user_id, None)
    return None
