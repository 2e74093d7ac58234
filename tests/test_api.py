"""API integration tests for the Finance Ledger: health, docs, categories and transactions."""

from decimal import Decimal

from fastapi.testclient import TestClient

from finance_ledger.core.db import DEFAULT_CATEGORIES
from tests.factories import CHASE_CSV

HTTP_200_OK = 200
HTTP_201_CREATED = 201
HTTP_404_NOT_FOUND = 404
HTTP_409_CONFLICT = 409
HTTP_422_UNPROCESSABLE = 422


def _import_chase(client: TestClient) -> None:
    job_id = client.post("/api/upload", files={"file": ("chase.csv", CHASE_CSV, "text/csv")}).json()["job_id"]
    client.post(f"/api/upload/{job_id}/confirm")


def test_health(client: TestClient) -> None:
    """Test the /health endpoint returns status ok."""
    response = client.get("/health")
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    if response.json() != {"status": "ok"}:
        msg = f"Expected response {{'status': 'ok'}}, got {response.json()}"
        raise AssertionError(msg)


def test_scalar_docs(client: TestClient) -> None:
    """Test the /scalar endpoint returns the API reference page."""
    response = client.get("/scalar")
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    if "openapi" not in response.text:
        msg = "Expected 'openapi' in response text"
        raise AssertionError(msg)


def test_default_categories_are_seeded(client: TestClient) -> None:
    """System categories exist, sorted by name, and cannot be deleted."""
    categories = client.get("/api/categories").json()
    names = [c["name"] for c in categories]
    if names != sorted(c["name"] for c in DEFAULT_CATEGORIES):
        msg = f"Unexpected categories: {names}"
        raise AssertionError(msg)
    if not all(c["is_system"] for c in categories):
        msg = "Seeded categories should be system categories"
        raise AssertionError(msg)
    response = client.delete(f"/api/categories/{categories[0]['id']}")
    if response.status_code != HTTP_404_NOT_FOUND:
        msg = f"Deleting a system category should be 404, got {response.status_code}"
        raise AssertionError(msg)


def test_create_and_delete_category(client: TestClient) -> None:
    """User categories can be created once and deleted."""
    created = client.post("/api/categories", json={"name": "Pets", "color": "#123456"})
    if created.status_code != HTTP_201_CREATED or created.json()["is_system"]:
        msg = f"Unexpected create response: {created.status_code} {created.text}"
        raise AssertionError(msg)
    duplicate = client.post("/api/categories", json={"name": "Pets"})
    if duplicate.status_code != HTTP_409_CONFLICT:
        msg = f"Duplicate category should be 409, got {duplicate.status_code}"
        raise AssertionError(msg)
    category_id = created.json()["id"]
    if client.delete(f"/api/categories/{category_id}").json() != {"success": True}:
        msg = "Expected the user category to be deleted"
        raise AssertionError(msg)
    if client.get(f"/api/categories/{category_id}").status_code != HTTP_404_NOT_FOUND:
        msg = "Deleted category should be gone"
        raise AssertionError(msg)


def test_transaction_filters(client: TestClient) -> None:
    """Listing honours merchant, amount and date filters and pagination."""
    _import_chase(client)
    by_merchant = client.get("/api/transactions", params={"merchant": "starbucks"}).json()
    if by_merchant["total"] != 1 or by_merchant["transactions"][0]["merchant"] != "STARBUCKS":
        msg = f"Merchant filter failed: {by_merchant}"
        raise AssertionError(msg)
    by_amount = client.get("/api/transactions", params={"min_amount": "100"}).json()
    if [t["merchant"] for t in by_amount["transactions"]] != ["PAYROLL DEPOSIT"]:
        msg = f"Amount filter failed: {by_amount}"
        raise AssertionError(msg)
    by_date = client.get("/api/transactions", params={"end_date": "2024-01-02"}).json()
    if by_date["total"] != 1:
        msg = f"Date filter failed: {by_date}"
        raise AssertionError(msg)
    paged = client.get("/api/transactions", params={"limit": 1, "page": 2}).json()
    if paged["total"] != 2 or [t["merchant"] for t in paged["transactions"]] != ["STARBUCKS"]:
        msg = f"Pagination failed: {paged}"
        raise AssertionError(msg)
    if client.get("/api/transactions", params={"page": 0}).status_code != HTTP_422_UNPROCESSABLE:
        msg = "page=0 should be rejected"
        raise AssertionError(msg)


def test_recategorize_and_stats(client: TestClient) -> None:
    """Manual re-categorization is flagged and reflected in spending statistics."""
    _import_chase(client)
    categories = {c["name"]: c["id"] for c in client.get("/api/categories").json()}
    coffee = client.get("/api/transactions", params={"merchant": "STARBUCKS"}).json()["transactions"][0]

    updated = client.put(f"/api/transactions/{coffee['id']}/category", json={"category_id": categories["Dining"]})
    if updated.status_code != HTTP_200_OK or not updated.json()["manually_categorized"]:
        msg = f"Unexpected update response: {updated.status_code} {updated.text}"
        raise AssertionError(msg)
    missing = client.put(f"/api/transactions/{coffee['id']}/category", json={"category_id": 999_999})
    if missing.status_code != HTTP_404_NOT_FOUND:
        msg = f"Unknown category should be 404, got {missing.status_code}"
        raise AssertionError(msg)

    stats = client.get("/api/transactions/stats").json()
    totals = (Decimal(stats["total_spent"]), Decimal(stats["total_income"]), Decimal(stats["net"]))
    if totals != (Decimal("5.25"), Decimal("1000"), Decimal("994.75")) or stats["transaction_count"] != 2:
        msg = f"Unexpected stats: {stats}"
        raise AssertionError(msg)
    if {name: Decimal(v) for name, v in stats["by_category"].items()} != {"Dining": Decimal("5.25")}:
        msg = f"Unexpected stats: {stats}"
        raise AssertionError(msg)


def test_delete_transaction(client: TestClient) -> None:
    """Transactions can be deleted once."""
    _import_chase(client)
    txn_id = client.get("/api/transactions").json()["transactions"][0]["id"]
    if client.delete(f"/api/transactions/{txn_id}").json() != {"success": True}:
        msg = "Expected the transaction to be deleted"
        raise AssertionError(msg)
    if client.get(f"/api/transactions/{txn_id}").status_code != HTTP_404_NOT_FOUND:
        msg = "Deleted transaction should be gone"
        raise AssertionError(msg)
