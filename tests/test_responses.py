import pytest

from content_gateway.errors import MalformedUpstreamReference, Unauthenticated
from content_gateway.responses import content_disposition, error_response, sanitize_filename


def test_sanitize_replaces_each_unsafe_character() -> None:
    assert sanitize_filename('a/b\\c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"


@pytest.mark.parametrize("name", ["W12345", "10.1063_1.5", "some name (v2) [final] & more-~.!#$%"])
def test_sanitize_leaves_other_characters_alone(name: str) -> None:
    assert sanitize_filename(name) == name


def test_doi_filenames_lose_their_slashes() -> None:
    assert sanitize_filename("10.1/abc") + ".pdf" == "10.1_abc.pdf"


def test_content_disposition_has_extended_filename() -> None:
    header = content_disposition("10.1_abc é.pdf")
    assert header == (
        "attachment; filename=\"10.1_abc _.pdf\"; "
        "filename*=UTF-8''10.1_abc%20%C3%A9.pdf"
    )


def test_json_errors_carry_code_message_and_context() -> None:
    error = MalformedUpstreamReference(work_id="W1", best_oa_location_id="junk")
    response = error_response(True, error)

    assert response.status_code == 502
    assert response.headers["cache-control"] == "no-store"
    assert response.body == (
        b'{"code":"malformed_upstream_reference","error":"Unrecognized best_oa_location.id format",'
        b'"message":"Unrecognized best_oa_location.id format","work_id":"W1","best_oa_location_id":"junk"}'
    )


def test_text_errors_are_the_message_alone() -> None:
    response = error_response(False, Unauthenticated("API key expired on 2020-01-01"))
    assert response.status_code == 401
    assert response.body == b"API key expired on 2020-01-01"
    assert response.headers["content-type"].startswith("text/plain")
