from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import get_settings
from .hcx_protocol import CORRELATION_ID, build_envelope

logger = logging.getLogger(__name__)


class HCXClient:
    def __init__(self) -> None:
        settings = get_settings()
        if not settings.NHCX_BASE_URL:
            raise RuntimeError("NHCX_BASE_URL is not configured")
        self.base_url = settings.NHCX_BASE_URL.rstrip("/")
        self.session_url = settings.SESSION_API_URL
        self.timeout = settings.HCX_TIMEOUT_SECONDS
        self.client_id = settings.ABDM_CLIENT_ID
        self.client_secret = settings.ABDM_CLIENT_SECRET
        self.grant_type = settings.ABDM_GRANT_TYPE

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_access_token(self) -> str:
        if not self.has_credentials:
            raise RuntimeError("ABDM_CLIENT_ID and ABDM_CLIENT_SECRET are not configured")
        response = requests.post(
            self.session_url,
            json={
                "clientId": self.client_id,
                "clientSecret": self.client_secret,
                "grantType": self.grant_type,
            },
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        token = response.json().get("accessToken")
        if not token:
            raise RuntimeError("Session API response did not contain an accessToken")
        return token

    def send(self, path: str, headers: dict[str, Any], bundle: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        http_headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.has_credentials:
            http_headers["Authorization"] = f"Bearer {self.get_access_token()}"

        logger.info("POST %s correlation_id=%s", url, headers.get(CORRELATION_ID))
        response = requests.post(
            url,
            json=build_envelope(headers, bundle),
            headers=http_headers,
            timeout=self.timeout,
        )
        logger.info("HCX %s answered %s", path, response.status_code)
        response.raise_for_status()
        return {"status_code": response.status_code, "body": _body(response)}


def _body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
