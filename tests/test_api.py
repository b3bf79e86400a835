"""
Integration tests for the prices HTTP endpoints.
"""
import io
import zipfile

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

HEADER = "id,name,category,unused,price,create_date\n"
ROWS = (
    "1,Widget,tools,x,10.00,2024-01-01\n"
    "2,Gadget,toys,x,20.50,2024-01-02\n"
    "3,Spanner,tools,x,5.25,2024-01-03\n"
)


def _upload(client, data: bytes, filename: str = "prices.zip"):
    return client.post(
        "/api/v0/prices",
        files={"file": (filename, data, "application/zip")},
    )


class TestImport:
    def test_import_success(self, client, make_zip):
        resp = _upload(client, make_zip(HEADER + ROWS))
        assert resp.status_code == 200
        assert resp.json() == {
            "total_items": 3,
            "total_categories": 2,
            "total_price": 35.75,
        }

    def test_two_prices_sum(self, client, make_zip):
        resp = _upload(client, make_zip(HEADER + "1,A,x,_,10.00,2024-01-01\n2,B,x,_,20.50,2024-01-01\n"))
        body = resp.json()
        assert body["total_price"] == pytest.approx(30.50)
        assert body["total_categories"] == 1

    def test_summary_covers_previous_imports(self, client, make_zip):
        _upload(client, make_zip(HEADER + ROWS))
        resp = _upload(client, make_zip(HEADER + "9,Lamp,lighting,x,4.25,2024-02-01\n"))
        assert resp.json() == {
            "total_items": 1,
            "total_categories": 3,
            "total_price": 40.0,
        }

    def test_short_and_bad_rows(self, client, make_zip, count_prices):
        text = HEADER + "1,Widget,tools,10.00,2024-01-01\n2,Gadget,toys,x,free,2024-01-02\n"
        resp = _upload(client, make_zip(text))
        assert resp.status_code == 200
        assert resp.json()["total_items"] == 1
        assert resp.json()["total_price"] == 0
        assert count_prices() == 1

    def test_non_utf8_row_skipped(self, client, count_prices):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as archive:
            archive.writestr("data.csv", HEADER.encode() + b"1,Caf\xe9,food,x,1.00,2024-01-01\n" + ROWS.encode())
        resp = _upload(client, buf.getvalue())
        assert resp.status_code == 200
        assert resp.json()["total_items"] == 3
        assert count_prices() == 3

    def test_nested_entry(self, client, make_zip):
        resp = _upload(client, make_zip(HEADER + ROWS, entry_name="foo/data.csv"))
        assert resp.status_code == 200
        assert resp.json()["total_items"] == 3

    def test_not_an_archive(self, client, count_prices):
        resp = _upload(client, b"this is not a zip")
        assert resp.status_code == 400
        assert resp.json()["error"]["type"] == "ArchiveFormatError"
        assert count_prices() == 0

    def test_missing_entry(self, client, make_zip):
        resp = _upload(client, make_zip(HEADER + ROWS, entry_name="other.csv"))
        assert resp.status_code == 400
        assert resp.json()["error"]["type"] == "EntryNotFoundError"

    def test_wrong_extension(self, client, make_zip):
        resp = _upload(client, make_zip(HEADER + ROWS), filename="prices.tar")
        assert resp.status_code == 400
        assert resp.json()["error"]["type"] == "UploadFormatError"

    def test_not_multipart(self, client, count_prices):
        resp = client.post("/api/v0/prices", json={"file": "data.csv"})
        assert resp.status_code == 400
        assert resp.json()["error"]["type"] == "UploadFormatError"
        assert count_prices() == 0

    def test_too_large(self, client, make_zip):
        from app.config import Settings, get_settings
        from app.main import app

        app.dependency_overrides[get_settings] = lambda: Settings(MAX_UPLOAD_BYTES=16)
        resp = _upload(client, make_zip(HEADER + ROWS))
        assert resp.status_code == 413

    def test_commit_failure_is_server_error(self, client, make_zip, count_prices, monkeypatch):
        def _fail_commit(self):
            raise OperationalError("COMMIT", None, Exception("disk full"))

        monkeypatch.setattr(Session, "commit", _fail_commit)
        resp = _upload(client, make_zip(HEADER + ROWS))
        monkeypatch.undo()
        assert resp.status_code == 500
        assert resp.json()["error"]["message"] == "Internal Server Error"
        assert count_prices() == 0

    def test_method_not_allowed(self, client):
        resp = client.put("/api/v0/prices")
        assert resp.status_code == 405


class TestExport:
    def _entries(self, resp) -> dict:
        with zipfile.ZipFile(io.BytesIO(resp.content)) as archive:
            return {name: archive.read(name).decode("utf-8") for name in archive.namelist()}

    def test_export_empty(self, client):
        resp = client.get("/api/v0/prices")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        assert resp.headers["content-disposition"] == 'attachment; filename="prices.zip"'
        entries = self._entries(resp)
        assert list(entries) == ["data.csv"]
        assert entries["data.csv"] == "product_id,name,category,id,price,create_date\n"

    def test_export_after_import(self, client, make_zip):
        _upload(client, make_zip(HEADER + ROWS))
        lines = self._entries(client.get("/api/v0/prices"))["data.csv"].splitlines()
        assert lines[1:] == [
            "1,Widget,tools,1,10.00,2024-01-01",
            "2,Gadget,toys,2,20.50,2024-01-02",
            "3,Spanner,tools,3,5.25,2024-01-03",
        ]

    def test_round_trip(self, client, make_zip):
        _upload(client, make_zip(HEADER + ROWS))
        exported = client.get("/api/v0/prices").content

        resp = _upload(client, exported)
        assert resp.status_code == 200
        assert resp.json()["total_items"] == 3

        lines = self._entries(client.get("/api/v0/prices"))["data.csv"].splitlines()
        first_batch = [line.split(",") for line in lines[1:4]]
        second_batch = [line.split(",") for line in lines[4:]]
        for old, new in zip(first_batch, second_batch):
            assert old[:3] + old[4:] == new[:3] + new[4:]
            assert int(new[3]) == int(old[3]) + 3


class TestHealth:
    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
