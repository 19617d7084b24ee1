"""
Blob Storage and Renderer Tests
===============================
"""

import os
from datetime import datetime

import pytest

from lexboard.db.models import ReportFormat
from lexboard.report_renderer import ReportRenderer, build_report_csv
from lexboard.storage import BlobStore, LocalStorage, StorageError, safe_filename


PAYLOAD = {
    "title": "Monthly",
    "description": "Status of the Smith matter",
    "requested_by": "Jane",
    "generated_at": datetime(2026, 3, 1, 9, 30),
    "case": {
        "id": "case-1",
        "title": "Smith v Jones",
        "description": "Contract dispute over late delivery",
        "status": "In Progress",
        "created_at": datetime(2026, 1, 5, 10, 0),
    },
    "documents": [{"filename": "brief.pdf", "mimetype": "application/pdf", "uploaded_at": datetime(2026, 1, 6)}],
    "comments": [{"author": "Pat", "text": "Filed the motion", "created_at": datetime(2026, 2, 1)}],
}


class TestLocalStorage:
    def test_put_get_delete(self, storage):
        stored = storage.put("reports/job-1/job-1.pdf", b"%PDF-1.4 data", "application/pdf")
        assert stored.key == "reports/job-1/job-1.pdf"
        assert stored.size_bytes == 13
        assert len(stored.sha256) == 64
        assert stored.content_type == "application/pdf"

        assert storage.exists(stored.key)
        assert storage.get(stored.key) == b"%PDF-1.4 data"

        assert storage.delete(stored.key) is True
        assert not storage.exists(stored.key)
        assert storage.delete(stored.key) is False

    def test_get_missing(self, storage):
        with pytest.raises(StorageError):
            storage.get("reports/nope/nope.pdf")

    def test_no_partial_files_left(self, storage):
        storage.put("cases/c1/a.pdf", b"abc")
        assert [p.name for p in storage.base_path.rglob("*") if p.is_file()] == ["a.pdf"]

    def test_failed_write_leaves_nothing_behind(self, storage, monkeypatch):
        def disk_full(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(os, "replace", disk_full)
        with pytest.raises(StorageError):
            storage.put("cases/c1/a.pdf", b"abc")
        assert not any(p.is_file() for p in storage.base_path.rglob("*"))

    @pytest.mark.parametrize("key", ["", "/etc/passwd", "../outside.pdf", "cases/../../outside.pdf", "a\x00b"])
    def test_rejects_keys_outside_base(self, storage, key):
        with pytest.raises(StorageError):
            storage.put(key, b"x")

    def test_creates_base_path(self, tmp_path):
        LocalStorage(str(tmp_path / "deep" / "blobs"))
        assert (tmp_path / "deep" / "blobs").is_dir()


class TestKeys:
    def test_generate_key(self):
        assert BlobStore.generate_key("reports", "job-1", "job-1.pdf") == "reports/job-1/job-1.pdf"

    def test_generate_key_strips_separators(self):
        key = BlobStore.generate_key("cases", "../c1", "../../evil name.pdf")
        assert key == "cases/c1/evil_name.pdf"

    @pytest.mark.parametrize("filename,expected", [
        ("brief.pdf", "brief.pdf"),
        ("C:\\Users\\jane\\scan 1.png", "scan_1.png"),
        ("../../x.pdf", "x.pdf"),
        ("", "file"),
        ("...", "file"),
    ])
    def test_safe_filename(self, filename, expected):
        assert safe_filename(filename) == expected


class TestRenderer:
    def test_pdf(self):
        rendered = ReportRenderer().render(PAYLOAD, ReportFormat.PDF)
        assert rendered.content_type == "application/pdf"
        assert rendered.extension == "pdf"
        assert rendered.data.startswith(b"%PDF")

    def test_pdf_without_case(self):
        payload = dict(PAYLOAD, case=None, documents=[], comments=[])
        assert ReportRenderer().render(payload, "PDF").data.startswith(b"%PDF")

    def test_pdf_long_text_paginates(self):
        payload = dict(PAYLOAD, comments=[
            {"author": "Pat", "text": "word " * 200, "created_at": datetime(2026, 2, 1)} for _ in range(40)
        ])
        data = ReportRenderer().render(payload, ReportFormat.PDF).data
        # Page dictionaries plus the page tree root
        assert data.count(b"/Type /Page") >= 3

    def test_csv(self):
        rendered = ReportRenderer().render(PAYLOAD, ReportFormat.CSV)
        assert rendered.content_type == "text/csv"
        assert rendered.extension == "csv"
        lines = rendered.data.decode("utf-8").splitlines()
        assert lines[0] == "section,field,value,timestamp"
        assert "case,title,Smith v Jones," in lines
        assert "comment,Pat,Filed the motion,2026-02-01 00:00" in lines

    def test_csv_quotes_commas(self):
        payload = dict(PAYLOAD, comments=[{"author": "Pat", "text": "Yes, filed", "created_at": None}])
        assert b'comment,Pat,"Yes, filed",' in build_report_csv(payload)
