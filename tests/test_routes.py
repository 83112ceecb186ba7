"""End-to-end behaviour of GET /works/{id}/best_oa_location/{pdf|parsed-pdf}."""

import pytest

from conftest import EXPIRED_AT, EXPIRED_KEY, PAID_KEY, UNPAID_KEY

PDF_PATH = "/works/{}/best_oa_location/pdf"
XML_PATH = "/works/{}/best_oa_location/parsed-pdf"


def _no_external_calls(gateway) -> None:
    assert gateway.catalog.requests == []
    assert gateway.dynamo.queries == []
    assert gateway.s3.requests == []


def test_health(gateway) -> None:
    response = gateway.client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.parametrize(
    "path",
    [
        "/",
        "/works/W1",
        "/works/W1/best_oa_location",
        "/works/W1/best_oa_location/html",
        "/works/W1/best_oa_location/pdf/extra",
        "/authors/W1/best_oa_location/pdf",
        "/works/W1/locations/pdf",
        "/works/10.1/abc/best_oa_location/pdf",
    ],
)
def test_unknown_path_shapes_are_404_before_auth(gateway, path: str) -> None:
    response = gateway.client.get(path)
    assert response.status_code == 404
    assert response.text == "Not Found"
    _no_external_calls(gateway)


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
def test_non_get_methods_are_405(gateway, method: str) -> None:
    response = gateway.client.request(method, PDF_PATH.format("W1"), params={"api_key": PAID_KEY})
    assert response.status_code == 405
    _no_external_calls(gateway)


def test_invalid_identifier_is_400(gateway) -> None:
    response = gateway.client.get(PDF_PATH.format("A123"), params={"api_key": PAID_KEY, "json": "true"})
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "invalid_identifier"
    assert body["work_id_input"] == "A123"
    _no_external_calls(gateway)


def test_missing_key_is_401(gateway) -> None:
    response = gateway.client.get(PDF_PATH.format("W1"))
    assert response.status_code == 401
    assert "api_key" in response.text
    _no_external_calls(gateway)


def test_expired_key_is_401_with_expiry(gateway) -> None:
    response = gateway.client.get(PDF_PATH.format("W1"), params={"api_key": EXPIRED_KEY, "json": "true"})
    assert response.status_code == 401
    body = response.json()
    assert body["code"] == "unauthenticated"
    assert EXPIRED_AT in body["message"]
    _no_external_calls(gateway)


def test_expired_key_text_mode_message(gateway) -> None:
    response = gateway.client.get(PDF_PATH.format("W1"), params={"api_key": EXPIRED_KEY})
    assert response.status_code == 401
    assert response.text == f"API key expired on {EXPIRED_AT}"


def test_numeric_expiry_key_gets_401_not_500(gateway) -> None:
    gateway.key_store.add("numeric", credit_card_on_file=True, expires_at="1735689600")
    response = gateway.client.get(PDF_PATH.format("W1"), params={"api_key": "numeric"})
    assert response.status_code == 401
    assert response.text == "API key expired on 1735689600"
    _no_external_calls(gateway)


@pytest.mark.parametrize("work_id", ["W1", "10.1%2Fabc", "not-an-id"])
def test_unpaid_key_is_403(gateway, work_id: str) -> None:
    gateway.catalog.add("W1", "doi:10.1/abc")
    response = gateway.client.get(PDF_PATH.format(work_id), headers={"Authorization": f"Bearer {UNPAID_KEY}"})
    if work_id == "not-an-id":
        # identifier validation runs first
        assert response.status_code == 400
    else:
        assert response.status_code == 403
        assert response.text == "A credit card on file is required to download files"
    _no_external_calls(gateway)


def test_query_key_wins_over_header(gateway) -> None:
    response = gateway.client.get(
        PDF_PATH.format("W1"),
        params={"api_key": UNPAID_KEY},
        headers={"Authorization": f"Bearer {PAID_KEY}"},
    )
    assert response.status_code == 403


def test_metadata_mode_without_mapping(gateway) -> None:
    gateway.catalog.add("W12345", "doi:10.1/abc")

    response = gateway.client.get(PDF_PATH.format("w12345"), params={"api_key": PAID_KEY, "json": "true"})

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    assert response.json() == {
        "work_id": "w12345",
        "canonical_id": "W12345",
        "work_api": "https://api.openalex.test/works/W12345?data-version=2",
        "best_oa_location_id": "doi:10.1/abc",
        "native_id": "10.1/abc",
        "native_id_namespace": "doi",
        "mapping_found_in_dynamodb": False,
        "file_uuid": None,
        "file_key": None,
        "in_r2": False,
        "in_s3": False,
        "download_url": None,
    }
    assert gateway.s3.requests == []


def test_metadata_mode_with_artifact_in_both_tiers(gateway) -> None:
    gateway.catalog.add("W7", "pmh:oai:arXiv.org:2101.00001")
    gateway.dynamo.add("grobid-xml", "oai:arXiv.org:2101.00001", "u7")
    gateway.primary.put("openalex-grobid-xml", "u7.xml.gz", b"\x1f\x8bxml")
    gateway.s3.add("openalex-harvested-grobid-xml", "u7.xml.gz", b"\x1f\x8bxml")

    response = gateway.client.get(XML_PATH.format("W7"), params={"api_key": PAID_KEY, "json": "TRUE"})

    body = response.json()
    assert response.status_code == 200
    assert body["native_id_namespace"] == "pmh"
    assert body["native_id"] == "oai:arXiv.org:2101.00001"
    assert body["mapping_found_in_dynamodb"] is True
    assert body["file_uuid"] == "u7"
    assert body["file_key"] == "u7.xml.gz"
    assert body["in_r2"] is True
    assert body["in_s3"] is True
    assert body["download_url"] == f"http://testserver/works/W7/best_oa_location/parsed-pdf?api_key={PAID_KEY}"


def test_metadata_mode_download_url_keeps_encoded_doi(gateway) -> None:
    gateway.dynamo.add("harvested-pdf", "10.1/abc", "u1")
    gateway.s3.add("openalex-harvested-pdfs", "u1.pdf", b"%PDF")

    response = gateway.client.get(PDF_PATH.format("10.1%2Fabc"), params={"json": "true", "api_key": PAID_KEY})

    body = response.json()
    assert body["work_id"] == "10.1/abc"
    assert body["work_api"] is None
    assert body["best_oa_location_id"] == "doi:10.1/abc"
    assert body["in_r2"] is False
    assert body["in_s3"] is True
    assert body["download_url"] == f"http://testserver/works/10.1%2Fabc/best_oa_location/pdf?api_key={PAID_KEY}"
    assert gateway.catalog.requests == []


def test_stream_from_primary(gateway) -> None:
    gateway.catalog.add("W12345", "doi:10.1/abc")
    gateway.dynamo.add("harvested-pdf", "10.1/abc", "u1")
    gateway.primary.put("openalex-pdfs", "u1.pdf", b"%PDF-1.7 primary")
    gateway.s3.add("openalex-harvested-pdfs", "u1.pdf", b"%PDF-1.7 backup")

    response = gateway.client.get(PDF_PATH.format("W12345"), params={"api_key": PAID_KEY})

    assert response.status_code == 200
    assert response.content == b"%PDF-1.7 primary"
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["cache-control"] == "private, no-store"
    assert response.headers["content-disposition"] == (
        "attachment; filename=\"W12345.pdf\"; filename*=UTF-8''W12345.pdf"
    )
    assert gateway.s3.requests == []
    assert gateway.key_store.get_content_usage(PAID_KEY) == 1


def test_stream_foreign_id_from_backup_only(gateway) -> None:
    gateway.dynamo.add("harvested-pdf", "10.1/abc", "u1")
    gateway.s3.add("openalex-harvested-pdfs", "u1.pdf", b"%PDF-1.7 backup")

    response = gateway.client.get(PDF_PATH.format("10.1%2Fabc"), params={"api_key": PAID_KEY})

    assert response.status_code == 200
    assert response.content == b"%PDF-1.7 backup"
    assert response.headers["content-length"] == str(len(b"%PDF-1.7 backup"))
    assert response.headers["content-disposition"] == (
        "attachment; filename=\"10.1_abc.pdf\"; filename*=UTF-8''10.1_abc.pdf"
    )
    assert gateway.catalog.requests == []
    assert [r.method for r in gateway.s3.requests] == ["GET"]


def test_stream_without_mapping_is_404(gateway) -> None:
    gateway.catalog.add("W1", "doi:10.1/abc")
    response = gateway.client.get(XML_PATH.format("W1"), params={"api_key": PAID_KEY})
    assert response.status_code == 404
    assert response.text == "Grobid XML mapping not found (native_id not in DB)"


def test_stream_missing_from_both_tiers_is_404(gateway) -> None:
    gateway.catalog.add("W1", "doi:10.1/abc")
    gateway.dynamo.add("harvested-pdf", "10.1/abc", "u1")

    response = gateway.client.get(PDF_PATH.format("W1"), params={"api_key": PAID_KEY})

    assert response.status_code == 404
    assert response.text == "PDF not found in R2 or S3 (u1.pdf)"
    assert gateway.key_store.get_content_usage(PAID_KEY) == 0


def test_work_without_location_is_404(gateway) -> None:
    gateway.catalog.add("W1", None)
    response = gateway.client.get(PDF_PATH.format("W1"), params={"api_key": PAID_KEY, "json": "true"})
    assert response.status_code == 404
    assert response.json()["code"] == "upstream_location_absent"
    assert gateway.dynamo.queries == []


def test_unknown_work_is_404(gateway) -> None:
    response = gateway.client.get(PDF_PATH.format("W404"), params={"api_key": PAID_KEY})
    assert response.status_code == 404
    assert response.text == "No best_oa_location for this work"


def test_malformed_location_is_502(gateway) -> None:
    gateway.catalog.add("W1", "no-scheme-here")
    response = gateway.client.get(PDF_PATH.format("W1"), params={"api_key": PAID_KEY, "json": "true"})
    assert response.status_code == 502
    assert response.json()["best_oa_location_id"] == "no-scheme-here"
    assert gateway.dynamo.queries == []


def test_index_fault_is_500_without_secrets(gateway) -> None:
    gateway.catalog.add("W1", "doi:10.1/abc")
    gateway.dynamo.fail_with()

    response = gateway.client.get(PDF_PATH.format("W1"), params={"api_key": PAID_KEY, "json": "true"})

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "index_store_fault"
    assert body["table_name"] == "harvested-pdf"
    assert body["native_id"] == "10.1/abc"
    assert gateway.config.aws_secret_access_key not in response.text
    assert len(gateway.dynamo.queries) == 1
