"""
HTTP tests against the FastAPI app, backed by an in-memory SQLite database and a temporary
blob directory (see conftest.py). One client, and so one database, is shared by the whole class;
each test works on lenders and users it creates itself.
"""
import unittest
from urllib.parse import urlparse

from fastapi.testclient import TestClient

from main import app


def _lender_body(name: str, **overrides):
    body = {
        "name": name,
        "websiteLink": "https://lender.example.com",
        "phone": "020 7946 0999",
        "email": "team@lender.example.com",
        "rate": {"min": 4.5, "max": 11},
        "loanAmount": {"min": 25000, "max": 750000},
        "term": {"min": 6, "max": 84},
        "age": {"min": 18, "max": 80},
        "loanProcessingTime": {"min": 3, "max": 15},
        "decisionTime": {"min": 1, "max": 4},
        "minTradingPeriod": 12,
        "maxLoanToValue": 70,
        "personalGuarantee": True,
        "earlyRepaymentCharges": False,
        "interestTreatment": "Serviced",
        "coveredLocation": ["England", "Wales"],
        "loanTypes": ["Business Loans"],
    }
    body.update(overrides)
    return body


class TestLenderDirectoryApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)
        cls.client.__enter__()

    @classmethod
    def tearDownClass(cls):
        cls.client.__exit__(None, None, None)

    def _create(self, name, **overrides):
        response = self.client.post("/api/lenders", json=_lender_body(name, **overrides))
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_health(self):
        """Health endpoint answers ok."""
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_create_and_get(self):
        """Created lender is returned in camelCase and readable by id."""
        created = self._create("Api Created Lender", additionalInfo="Asset-backed only")
        self.assertEqual(created["loanAmount"], {"min": 25000, "max": 750000})
        self.assertEqual(created["criteriaSheets"], [])

        response = self.client.get(f"/api/lenders/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["additionalInfo"], "Asset-backed only")

    def test_get_unknown(self):
        """Unknown lender id -> 404."""
        self.assertEqual(self.client.get("/api/lenders/does-not-exist").status_code, 404)

    def test_invalid_lender_rejected(self):
        """Empty loan types -> 400; unknown loan type -> 422."""
        response = self.client.post("/api/lenders", json=_lender_body("No Types", loanTypes=[]))
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/lenders", json=_lender_body("Bad Type", loanTypes=["Payday"]))
        self.assertEqual(response.status_code, 422)

    def test_search_filters_and_sort(self):
        """Query parameters filter and sort the listing."""
        self._create("Zephyr Bridge", loanTypes=["Bridging Loans"], maxLoanToValue=65)
        self._create("Zephyr Invoice", loanTypes=["Invoice Finance"], maxLoanToValue=85)

        names = [l["name"] for l in self.client.get("/api/lenders", params={"searchTerm": "zephyr"}).json()]
        self.assertEqual(names, ["Zephyr Bridge", "Zephyr Invoice"])

        params = {"searchTerm": "zephyr", "loanTypes": ["Bridging Loans", "Trade Finance"]}
        names = [l["name"] for l in self.client.get("/api/lenders", params=params).json()]
        self.assertEqual(names, ["Zephyr Bridge"])

        params = {"searchTerm": "zephyr", "maxLTV": 80, "minLoan": 1_000_000}
        self.assertEqual(self.client.get("/api/lenders", params=params).json(), [])

        params = {"searchTerm": "zephyr", "sort": "desc"}
        names = [l["name"] for l in self.client.get("/api/lenders", params=params).json()]
        self.assertEqual(names, ["Zephyr Invoice", "Zephyr Bridge"])

    def test_patch(self):
        """Patch changes only the given fields; inverted range -> 400; unknown id -> 404."""
        created = self._create("Patch Target")
        response = self.client.patch(f"/api/lenders/{created['id']}", json={"maxLoanToValue": 60})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["maxLoanToValue"], 60)
        self.assertEqual(response.json()["name"], "Patch Target")

        response = self.client.patch(f"/api/lenders/{created['id']}", json={"rate": {"min": 9, "max": 2}})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.patch("/api/lenders/missing", json={"phone": "1"}).status_code, 404)

    def test_criteria_sheet_upload_download_and_detach(self):
        """Uploaded sheet is served from its URL until detached."""
        created = self._create("Sheet Holder")
        response = self.client.post(
            f"/api/lenders/{created['id']}/criteria-sheets",
            data={"name": "Lending criteria"},
            files={"file": ("Lending Criteria.pdf", b"%PDF-1.4 criteria", "application/pdf")},
        )
        self.assertEqual(response.status_code, 201, response.text)
        sheets = response.json()["criteriaSheets"]
        self.assertEqual([s["name"] for s in sheets], ["Lending criteria"])

        download = self.client.get(urlparse(sheets[0]["url"]).path)
        self.assertEqual(download.status_code, 200)
        self.assertEqual(download.content, b"%PDF-1.4 criteria")

        response = self.client.delete(f"/api/lenders/{created['id']}/criteria-sheets/{sheets[0]['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["criteriaSheets"], [])
        self.assertEqual(self.client.get(urlparse(sheets[0]["url"]).path).status_code, 404)

    def test_non_pdf_upload_rejected(self):
        """Non-PDF upload -> 400 and no sheet recorded."""
        created = self._create("Picky Lender")
        response = self.client.post(
            f"/api/lenders/{created['id']}/criteria-sheets",
            data={"name": "Logo"},
            files={"file": ("logo.png", b"\x89PNG", "image/png")},
        )
        self.assertEqual(response.status_code, 400)
        lender = self.client.get(f"/api/lenders/{created['id']}").json()
        self.assertEqual(lender["criteriaSheets"], [])

    def test_delete(self):
        """Deleted lender -> 404 on read and on a second delete."""
        created = self._create("Short Lived")
        self.assertEqual(self.client.delete(f"/api/lenders/{created['id']}").status_code, 204)
        self.assertEqual(self.client.get(f"/api/lenders/{created['id']}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/lenders/{created['id']}").status_code, 404)

    def test_options_and_summary(self):
        """Options list the enumerations; summary total matches the listing."""
        options = self.client.get("/api/lenders/options").json()
        self.assertEqual(len(options["loanTypes"]), 8)
        self.assertIn("Northern Ireland", options["locations"])
        self.assertIn("Rolled Up", options["interestTreatments"])

        self._create("Summary Lender")
        total = len(self.client.get("/api/lenders").json())
        summary = self.client.get("/api/lenders/summary").json()
        self.assertEqual(summary["totalLenders"], total)
        self.assertLessEqual(len(summary["recentlyAdded"]), 5)

    def test_refresh(self):
        """Refresh returns the reloaded lender list."""
        self._create("Refresh Lender")
        response = self.client.post("/api/lenders/refresh")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Refresh Lender", [l["name"] for l in response.json()])

    def test_users_and_login(self):
        """Usernames are unique ignoring case; login checks the password."""
        response = self.client.post("/api/users", json={"username": "Broker.One", "password": "password123"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["username"], "broker.one")
        self.assertNotIn("passwordHash", response.json())

        duplicate = self.client.post("/api/users", json={"username": "broker.one", "password": "password456"})
        self.assertEqual(duplicate.status_code, 409)

        login = self.client.post("/api/users/login", json={"username": "broker.one", "password": "password123"})
        self.assertEqual(login.status_code, 200)
        self.assertIsNotNone(login.json()["lastLogin"])
        bad = self.client.post("/api/users/login", json={"username": "broker.one", "password": "wrong-pass"})
        self.assertEqual(bad.status_code, 401)

        short = self.client.post("/api/users", json={"username": "x", "password": "short"})
        self.assertEqual(short.status_code, 422)

    def test_favourites_toggle(self):
        """Toggle flips the favourite; unknown lender or user -> 404."""
        user = self.client.post("/api/users", json={"username": "fan", "password": "password123"}).json()
        lender = self._create("Favourite Lender")
        base = f"/api/users/{user['id']}/favourites"

        response = self.client.post(f"{base}/{lender['id']}/toggle")
        self.assertEqual(response.json(), {"lenderId": lender["id"], "isFavourite": True})
        self.assertEqual(self.client.get(base).json()["lenderIds"], [lender["id"]])

        response = self.client.post(f"{base}/{lender['id']}/toggle")
        self.assertFalse(response.json()["isFavourite"])
        self.assertEqual(self.client.get(base).json()["lenderIds"], [])

        self.assertEqual(self.client.post(f"{base}/missing/toggle").status_code, 404)
        self.assertEqual(self.client.get("/api/users/nobody/favourites").status_code, 404)

    def test_deleted_lender_leaves_favourites(self):
        """Favourited lender deleted -> gone from the user's favourites."""
        user = self.client.post("/api/users", json={"username": "loyal.fan", "password": "password123"}).json()
        lender = self._create("Doomed Favourite")
        base = f"/api/users/{user['id']}/favourites"
        self.assertTrue(self.client.post(f"{base}/{lender['id']}/toggle").json()["isFavourite"])

        self.assertEqual(self.client.delete(f"/api/lenders/{lender['id']}").status_code, 204)
        self.assertEqual(self.client.get(base).json()["lenderIds"], [])

    def test_deleted_user_has_no_favourites(self):
        """User deleted after favouriting -> favourites 404 instead of the old set."""
        user = self.client.post("/api/users", json={"username": "leaving.fan", "password": "password123"}).json()
        lender = self._create("Left Behind")
        base = f"/api/users/{user['id']}/favourites"
        self.client.post(f"{base}/{lender['id']}/toggle")
        self.assertEqual(self.client.get(base).json()["lenderIds"], [lender["id"]])

        self.assertEqual(self.client.delete(f"/api/users/{user['id']}").status_code, 204)
        self.assertEqual(self.client.get(base).status_code, 404)
        self.assertEqual(self.client.post(f"{base}/{lender['id']}/toggle").status_code, 404)


if __name__ == "__main__":
    unittest.main()
