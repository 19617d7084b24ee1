"""
Case Documents and Comments Tests
=================================
"""

from conftest import MAX_UPLOAD_BYTES, create_case

from lexboard.db.models import CaseDocument

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def upload(client, who, case_id, filename="brief.pdf", data=PDF_BYTES, content_type="application/pdf"):
    return client.post(
        f"/cases/{case_id}/upload",
        files={"file": (filename, data, content_type)},
        headers=who["headers"],
    )


class TestUpload:
    def test_upload_and_download(self, client, advocate_a):
        case = create_case(client, advocate_a)
        response = upload(client, advocate_a, case["id"])
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "File uploaded successfully"
        document = body["document"]
        assert document["filename"] == "brief.pdf"
        assert document["mimetype"] == "application/pdf"
        assert document["sizeBytes"] == len(PDF_BYTES)
        assert document["url"] == f"/cases/{case['id']}/documents/{document['id']}"

        fetched = client.get(f"/cases/{case['id']}", headers=advocate_a["headers"]).json()
        assert [d["id"] for d in fetched["documents"]] == [document["id"]]

        download = client.get(document["url"], headers=advocate_a["headers"])
        assert download.status_code == 200
        assert download.content == PDF_BYTES
        assert download.headers["content-type"] == "application/pdf"
        assert 'filename="brief.pdf"' in download.headers["content-disposition"]

    def test_image_types_accepted(self, client, advocate_a):
        case = create_case(client, advocate_a)
        assert upload(client, advocate_a, case["id"], "scan.png", b"\x89PNG\r\n", "image/png").status_code == 200
        assert upload(client, advocate_a, case["id"], "photo.jpg", b"\xff\xd8\xff", "image/jpeg").status_code == 200

    def test_rejects_other_types(self, client, advocate_a):
        case = create_case(client, advocate_a)
        response = upload(client, advocate_a, case["id"], "notes.txt", b"hello", "text/plain")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    def test_rejects_oversized_file(self, client, advocate_a):
        case = create_case(client, advocate_a)
        response = upload(client, advocate_a, case["id"], data=b"x" * (MAX_UPLOAD_BYTES + 1))
        assert response.status_code == 413
        assert response.json()["error"]["code"] == "payload_too_large"

        fetched = client.get(f"/cases/{case['id']}", headers=advocate_a["headers"]).json()
        assert fetched["documents"] == []

    def test_rejects_empty_file(self, client, advocate_a):
        case = create_case(client, advocate_a)
        assert upload(client, advocate_a, case["id"], data=b"").status_code == 400

    def test_filename_is_sanitized(self, client, advocate_a):
        case = create_case(client, advocate_a)
        response = upload(client, advocate_a, case["id"], filename="../../etc/pass wd.pdf")
        assert response.status_code == 200
        document = response.json()["document"]
        assert "/" not in document["filename"]
        assert document["filename"] == "pass_wd.pdf"

        storage = client.app.state.resources.storage
        with client.app.state.resources.database.session() as db:
            key = db.get(CaseDocument, document["id"]).storage_key
        assert key.startswith(f"cases/{case['id']}/")
        assert storage.exists(key)

    def test_upload_respects_scope(self, client, advocate_a, advocate_b):
        case = create_case(client, advocate_a)
        assert upload(client, advocate_b, case["id"]).status_code == 404

        document = upload(client, advocate_a, case["id"]).json()["document"]
        assert client.get(document["url"], headers=advocate_b["headers"]).status_code == 404

    def test_unknown_document(self, client, advocate_a):
        case = create_case(client, advocate_a)
        response = client.get(f"/cases/{case['id']}/documents/nope", headers=advocate_a["headers"])
        assert response.status_code == 404

    def test_delete_case_removes_blobs(self, client, advocate_a):
        case = create_case(client, advocate_a)
        document = upload(client, advocate_a, case["id"]).json()["document"]
        with client.app.state.resources.database.session() as db:
            key = db.get(CaseDocument, document["id"]).storage_key

        assert client.delete(f"/cases/{case['id']}", headers=advocate_a["headers"]).status_code == 200
        assert not client.app.state.resources.storage.exists(key)


class TestComments:
    def test_add_comment(self, client, advocate_a, paralegal):
        case = create_case(client, advocate_a)
        response = client.post(f"/cases/{case['id']}/comments", json={"text": "Called opposing counsel"},
                               headers=paralegal["headers"])
        assert response.status_code == 201
        comment = response.json()
        assert comment["text"] == "Called opposing counsel"
        assert comment["authorName"] == "Pat"
        assert comment["userId"] == paralegal["user"]["id"]

        fetched = client.get(f"/cases/{case['id']}", headers=advocate_a["headers"]).json()
        assert [c["text"] for c in fetched["comments"]] == ["Called opposing counsel"]

    def test_blank_comment_rejected(self, client, advocate_a):
        case = create_case(client, advocate_a)
        response = client.post(f"/cases/{case['id']}/comments", json={"text": "   "},
                               headers=advocate_a["headers"])
        assert response.status_code == 400

    def test_comment_respects_scope(self, client, advocate_a, advocate_b):
        case = create_case(client, advocate_a)
        response = client.post(f"/cases/{case['id']}/comments", json={"text": "Hi"},
                               headers=advocate_b["headers"])
        assert response.status_code == 404
