"""
Seed the directory with sample lenders and an admin user.
Run: python -m scripts.seed_lenders (from the project directory).
Admin credentials come from SEED_ADMIN_USERNAME / SEED_ADMIN_PASSWORD; no user is created without them.
"""
import asyncio
import os
import sys

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings
from database import init_db
from schemas.lender import LenderCreate
from services.attachments import DocumentAttachmentManager
from services.blob_store import LocalBlobStore
from services.exceptions import ConstraintViolationError
from services.lender_repository import LenderRepository
from services.record_store import SqlRecordStore
from services.users import UserDirectory


LENDERS_DATA = [
    {
        "name": "Northgate Business Finance",
        "website_link": "https://northgate.example.com",
        "phone": "020 7946 0101",
        "email": "brokers@northgate.example.com",
        "rate": {"min": 6.5, "max": 14.0},
        "loan_amount": {"min": 25_000, "max": 500_000},
        "term": {"min": 12, "max": 60},
        "age": {"min": 18, "max": 75},
        "loan_processing_time": {"min": 2, "max": 10},
        "decision_time": {"min": 1, "max": 3},
        "min_trading_period": 24,
        "max_loan_to_value": 75,
        "personal_guarantee": True,
        "early_repayment_charges": False,
        "interest_treatment": "Serviced",
        "covered_location": ["England", "Wales"],
        "loan_types": ["Business Loans", "Asset Finance"],
        "additional_info": "Specialises in manufacturing and logistics.",
    },
    {
        "name": "Harbour Bridging",
        "website_link": "https://harbourbridging.example.com",
        "phone": "0131 496 0202",
        "email": "deals@harbourbridging.example.com",
        "rate": {"min": 0.65, "max": 1.2},
        "loan_amount": {"min": 100_000, "max": 10_000_000},
        "term": {"min": 3, "max": 24},
        "age": {"min": 21, "max": 85},
        "loan_processing_time": {"min": 5, "max": 21},
        "decision_time": {"min": 1, "max": 2},
        "min_trading_period": 0,
        "max_loan_to_value": 70,
        "personal_guarantee": False,
        "early_repayment_charges": False,
        "interest_treatment": "Rolled Up",
        "covered_location": ["England", "Scotland", "Wales"],
        "loan_types": ["Bridging Loans", "Development Finance"],
        "additional_info": "Regulated and unregulated bridging; auction purchases.",
    },
    {
        "name": "Ledger Invoice Partners",
        "website_link": "https://ledgerinvoice.example.com",
        "phone": "0161 496 0303",
        "email": "intro@ledgerinvoice.example.com",
        "rate": {"min": 1.5, "max": 3.5},
        "loan_amount": {"min": 10_000, "max": 2_000_000},
        "term": {"min": 1, "max": 36},
        "age": {"min": 18, "max": 80},
        "loan_processing_time": {"min": 3, "max": 14},
        "decision_time": {"min": 1, "max": 5},
        "min_trading_period": 12,
        "max_loan_to_value": 90,
        "personal_guarantee": True,
        "early_repayment_charges": True,
        "interest_treatment": "Serviced",
        "covered_location": ["England", "Scotland", "Wales", "Northern Ireland"],
        "loan_types": ["Invoice Finance", "Trade Finance"],
    },
    {
        "name": "Keystone Commercial Mortgages",
        "website_link": "https://keystonecm.example.com",
        "phone": "029 2018 0404",
        "email": "brokers@keystonecm.example.com",
        "rate": {"min": 5.2, "max": 9.9},
        "loan_amount": {"min": 150_000, "max": 5_000_000},
        "term": {"min": 36, "max": 300},
        "age": {"min": 21, "max": 80},
        "loan_processing_time": {"min": 20, "max": 60},
        "decision_time": {"min": 2, "max": 7},
        "min_trading_period": 36,
        "max_loan_to_value": 65,
        "personal_guarantee": True,
        "early_repayment_charges": True,
        "interest_treatment": "Serviced",
        "covered_location": ["England", "Wales"],
        "loan_types": ["Commercial Mortgages", "BTL Mortgages"],
        "additional_info": "Owner-occupied and investment property.",
    },
]


async def seed():
    await init_db()
    store = SqlRecordStore()
    blobs = LocalBlobStore(settings.blob_storage_dir, settings.public_files_url)
    repo = LenderRepository(store, DocumentAttachmentManager(store, blobs))
    existing = {l.name for l in await repo.list_all()}
    for data in LENDERS_DATA:
        if data["name"] in existing:
            print(f"Lender {data['name']} already exists, skipping")
            continue
        await repo.create(LenderCreate(**data))
        print(f"Seeded lender: {data['name']}")

    username = os.environ.get("SEED_ADMIN_USERNAME")
    password = os.environ.get("SEED_ADMIN_PASSWORD")
    if username and password:
        try:
            await UserDirectory(store).add_user(username, password, is_admin=True)
            print(f"Seeded admin user: {username}")
        except ConstraintViolationError:
            print(f"User {username} already exists, skipping")
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
