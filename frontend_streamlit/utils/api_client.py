import os
import requests
from requests import Response
from requests.exceptions import RequestException

PROVIDER = os.getenv("PROVIDER_API_URL", "http://127.0.0.1:8001")
PAYER = os.getenv("PAYER_API_URL", "http://127.0.0.1:8002")
CONVERTER = os.getenv("CONVERTER_API_URL", "http://127.0.0.1:8003")
FHIR_UTILITIES = os.getenv("FHIR_UTILITIES_API_URL", "http://127.0.0.1:8004")
DEFAULT_TIMEOUT = 30
UPLOAD_TIMEOUT = 300


def _error_response(error: Exception) -> Response:
    resp = Response()
    resp.status_code = 503
    resp._content = f"Backend unavailable: {error}".encode("utf-8")
    return resp


def get(base_url: str, path: str, params: dict | None = None):
    try:
        return requests.get(f"{base_url}{path}", params=params, timeout=DEFAULT_TIMEOUT)
    except RequestException as exc:
        return _error_response(exc)


def post(base_url: str, path: str, json: dict | None = None):
    headers = {"Content-Type": "application/json"}
    try:
        return requests.post(f"{base_url}{path}", json=json, headers=headers, timeout=DEFAULT_TIMEOUT)
    except RequestException as exc:
        return _error_response(exc)


def put(base_url: str, path: str, json: dict):
    headers = {"Content-Type": "application/json"}
    try:
        return requests.put(f"{base_url}{path}", json=json, headers=headers, timeout=DEFAULT_TIMEOUT)
    except RequestException as exc:
        return _error_response(exc)


def delete(base_url: str, path: str):
    try:
        return requests.delete(f"{base_url}{path}", timeout=DEFAULT_TIMEOUT)
    except RequestException as exc:
        return _error_response(exc)


def post_file(base_url: str, path: str, upload_file, field: str = "inputFile"):
    files = {field: (upload_file.name, upload_file.getvalue(), upload_file.type or "application/octet-stream")}
    try:
        return requests.post(f"{base_url}{path}", files=files, timeout=UPLOAD_TIMEOUT)
    except RequestException as exc:
        return _error_response(exc)


def error_message(resp: Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body.get("error") or body)
    return str(body)


def json_object(resp: Response) -> dict | None:
    """The response body when it is a JSON object, otherwise None."""
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
