import pytest
from requests import Response
from requests.exceptions import RequestException

from frontend_streamlit.utils import api_client


def _response(status_code, content):
    resp = Response()
    resp.status_code = status_code
    resp._content = content
    return resp


def test_json_object_returns_dict_bodies():
    resp = _response(200, b'{"message": "Conversion successful", "bundle": {}}')
    assert api_client.json_object(resp) == {"message": "Conversion successful", "bundle": {}}


@pytest.mark.parametrize("content", [b'[{"error": "no plan"}]', b'"ok"', b"Internal Server Error"])
def test_json_object_rejects_lists_and_text(content):
    assert api_client.json_object(_response(500, content)) is None


def test_error_message_prefers_message_then_detail():
    assert api_client.error_message(_response(400, b'{"message": "No file uploaded."}')) == "No file uploaded."
    assert api_client.error_message(_response(404, b'{"detail": "Not found"}')) == "Not found"
    assert api_client.error_message(_response(500, b"boom")) == "boom"


def test_unreachable_backend_becomes_503(monkeypatch):
    def refuse(*args, **kwargs):
        raise RequestException("connection refused")

    monkeypatch.setattr(api_client.requests, "get", refuse)
    resp = api_client.get("http://127.0.0.1:1", "/health")
    assert resp.status_code == 503
    assert api_client.json_object(resp) is None
    assert "Backend unavailable" in api_client.error_message(resp)
