from models.lender import CriteriaSheet, Lender
from models.user import Favorite, User

__all__ = [
    "CriteriaSheet",
    "Favorite",
    "Lender",
    "User",
]
