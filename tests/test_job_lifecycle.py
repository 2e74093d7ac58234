"""Integration test for the import lifecycle: upload, status, confirm, and ledger listing."""

import pytest
from fastapi.testclient import TestClient

from finance_ledger.services.file_service import FileService
from tests.factories import CHASE_CSV

HTTP_200_OK = 200
HTTP_202_ACCEPTED = 202
HTTP_400_BAD_REQUEST = 400
HTTP_404_NOT_FOUND = 404
HTTP_409_CONFLICT = 409
HTTP_413_TOO_LARGE = 413
HTTP_422_UNPROCESSABLE = 422
HTTP_500_SERVER_ERROR = 500


def _upload(client: TestClient, content: str, filename: str = "chase.csv") -> str:
    response = client.post("/api/upload", files={"file": (filename, content, "text/csv")})
    if response.status_code != HTTP_202_ACCEPTED:
        msg = f"Expected status {HTTP_202_ACCEPTED}, got {response.status_code}: {response.text}"
        raise AssertionError(msg)
    job_id = response.json().get("job_id")
    if not job_id:
        msg = "Expected a job_id in the response"
        raise AssertionError(msg)
    return job_id


def test_job_lifecycle(client: TestClient) -> None:
    """Upload a Chase export, review the staged rows, confirm with a correction, then list the ledger."""
    job_id = _upload(client, CHASE_CSV)

    status_resp = client.get(f"/api/upload/{job_id}/status")
    if status_resp.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {status_resp.status_code}"
        raise AssertionError(msg)
    status = status_resp.json()
    if status["status"] != "completed" or status["bank_format"] != "Chase" or status["total_count"] != 2:
        msg = f"Unexpected job status: {status}"
        raise AssertionError(msg)
    merchants = [t["merchant"] for t in status["transactions"]]
    if merchants != ["STARBUCKS", "PAYROLL DEPOSIT"]:
        msg = f"Unexpected staged merchants: {merchants}"
        raise AssertionError(msg)

    categories = {c["name"]: c["id"] for c in client.get("/api/categories").json()}
    confirm_resp = client.post(
        f"/api/upload/{job_id}/confirm",
        json={"corrections": [{"transactionId": 0, "categoryId": categories["Dining"]}]},
    )
    if confirm_resp.status_code != HTTP_200_OK or confirm_resp.json() != {"success": True, "saved_count": 2}:
        msg = f"Unexpected confirm response: {confirm_resp.status_code} {confirm_resp.text}"
        raise AssertionError(msg)

    page = client.get("/api/transactions").json()
    if page["total"] != 2:
        msg = f"Expected 2 ledger transactions, got {page}"
        raise AssertionError(msg)
    newest, oldest = page["transactions"]
    if newest["merchant"] != "PAYROLL DEPOSIT" or oldest["category_id"] != categories["Dining"]:
        msg = f"Unexpected ledger contents: {page}"
        raise AssertionError(msg)
    if not oldest["manually_categorized"] or oldest["transaction_type"] != "debit":
        msg = f"Correction flag or direction lost: {oldest}"
        raise AssertionError(msg)

    again = client.post(f"/api/upload/{job_id}/confirm")
    if again.status_code != HTTP_404_NOT_FOUND or "not found" not in again.json()["detail"]:
        msg = f"Second confirm should be 404 job not found, got {again.status_code} {again.text}"
        raise AssertionError(msg)
    if client.get(f"/api/upload/{job_id}/status").status_code != HTTP_404_NOT_FOUND:
        msg = "A confirmed job should no longer be visible"
        raise AssertionError(msg)


def test_non_csv_upload_is_rejected(client: TestClient) -> None:
    """Only .csv files are accepted."""
    response = client.post("/api/upload", files={"file": ("statement.pdf", b"%PDF-1.4", "application/pdf")})
    if response.status_code != HTTP_400_BAD_REQUEST:
        msg = f"Expected status {HTTP_400_BAD_REQUEST}, got {response.status_code}"
        raise AssertionError(msg)


def test_unsupported_bank_fails_job_and_cannot_be_confirmed(client: TestClient) -> None:
    """An unrecognized file fails the job; confirming it is a conflict and writes nothing."""
    job_id = _upload(client, "Date,Payee,Outflow\n2024-01-01,Somewhere,1.00\n")
    status = client.get(f"/api/upload/{job_id}/status").json()
    if status["status"] != "failed" or "Unable to detect bank format" not in status["error_message"]:
        msg = f"Expected failed job, got {status}"
        raise AssertionError(msg)
    response = client.post(f"/api/upload/{job_id}/confirm")
    if response.status_code != HTTP_409_CONFLICT or "not completed" not in response.json()["detail"]:
        msg = f"Expected 409 not completed, got {response.status_code} {response.text}"
        raise AssertionError(msg)
    if client.get("/api/transactions").json()["total"] != 0:
        msg = "Nothing should have been written to the ledger"
        raise AssertionError(msg)


def test_supported_banks(client: TestClient) -> None:
    """The supported-bank list names Chase."""
    if client.get("/api/upload/banks").json() != {"banks": ["Chase"]}:
        msg = "Expected Chase to be the only supported bank"
        raise AssertionError(msg)


def test_deleting_a_category_uncategorizes_its_transactions(client: TestClient) -> None:
    """Transactions confirmed into a user category fall back to uncategorized when the category is deleted."""
    job_id = _upload(client, CHASE_CSV)
    coffee = client.post("/api/categories", json={"name": "Coffee"}).json()
    client.post(
        f"/api/upload/{job_id}/confirm",
        json={"corrections": [{"transactionId": 0, "categoryId": coffee["id"]}]},
    )
    if client.get("/api/transactions", params={"category_id": coffee["id"]}).json()["total"] != 1:
        msg = "The corrected transaction should be filed under the new category"
        raise AssertionError(msg)

    if client.delete(f"/api/categories/{coffee['id']}").status_code != HTTP_200_OK:
        msg = "Deleting a user category should succeed"
        raise AssertionError(msg)
    page = client.get("/api/transactions").json()
    if page["total"] != 2 or any(t["category_id"] is not None for t in page["transactions"]):
        msg = f"Transactions should survive the delete, uncategorized: {page}"
        raise AssertionError(msg)


def test_confirm_with_unknown_category_is_rejected(client: TestClient) -> None:
    """A correction pointing at a category that does not exist is a 422 and the job stays confirmable."""
    job_id = _upload(client, CHASE_CSV)
    response = client.post(
        f"/api/upload/{job_id}/confirm",
        json={"corrections": [{"transactionId": 0, "categoryId": 999999}]},
    )
    if response.status_code != HTTP_422_UNPROCESSABLE or "Category not found" not in response.json()["detail"]:
        msg = f"Expected 422 category not found, got {response.status_code} {response.text}"
        raise AssertionError(msg)
    if client.get("/api/transactions").json()["total"] != 0:
        msg = "Nothing should have been written to the ledger"
        raise AssertionError(msg)
    if client.get(f"/api/upload/{job_id}/status").json()["status"] != "completed":
        msg = "The job should still be staged"
        raise AssertionError(msg)


def test_oversized_upload_is_rejected(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    """Uploads larger than MAX_UPLOAD_SIZE get 413 and leave no job behind."""
    monkeypatch.setenv("MAX_UPLOAD_SIZE", "16")
    response = client.post("/api/upload", files={"file": ("chase.csv", CHASE_CSV, "text/csv")})
    if response.status_code != HTTP_413_TOO_LARGE or "upload limit" not in response.json()["detail"]:
        msg = f"Expected 413, got {response.status_code} {response.text}"
        raise AssertionError(msg)
    if client.app.state.upload_service._jobs:
        msg = "A rejected upload must not leave a job behind"
        raise AssertionError(msg)


def test_failed_upload_write_discards_job(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    """If the upload cannot be written to disk the request fails with 500 and no pending job remains."""

    def disk_full(self: FileService, key: str, data: bytes) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(FileService, "save_file", disk_full)
    response = client.post("/api/upload", files={"file": ("chase.csv", CHASE_CSV, "text/csv")})
    if response.status_code != HTTP_500_SERVER_ERROR:
        msg = f"Expected 500, got {response.status_code} {response.text}"
        raise AssertionError(msg)
    if client.app.state.upload_service._jobs:
        msg = "A failed upload must not leave a pending job behind"
        raise AssertionError(msg)
