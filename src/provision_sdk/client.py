"""HTTP transport for the provisioning API."""

from __future__ import annotations

import os
from dataclasses import dataclass

from loguru import logger
from pydantic import ValidationError as SchemaError

from provision_sdk.errors import TransportError, ValidationError
from provision_sdk.schemas import CreateAccountsRequest

API_BASE_ENV_VAR = "PROVISION_API_BASE"
DEFAULT_API_BASE = "http://localhost:8000"


@dataclass
class ProvisioningAPI:
    base_url: str = ""
    timeout: float | None = None
    retries: int = 2

    def __post_init__(self) -> None:
        try:
            import requests
            from requests.adapters import HTTPAdapter
            from urllib3.util.retry import Retry
        except Exception as exc:  # pragma: no cover
            raise TransportError(f"requests stack unavailable: {exc}") from exc

        if not self.base_url:
            env_base = os.getenv(API_BASE_ENV_VAR)
            self.base_url = env_base.strip() if env_base and env_base.strip() else DEFAULT_API_BASE

        self._requests = requests
        self._session = requests.Session()
        # Connect failures are retried for every method; read and status retries
        # only for GET, since a replayed create-accounts call provisions twice.
        retry = Retry(
            total=max(0, int(self.retries)),
            connect=max(0, int(self.retries)),
            read=max(0, int(self.retries)),
            status=max(0, int(self.retries)),
            status_forcelist=(429, 500, 502, 503, 504),
            backoff_factor=0.2,
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, *, json_payload: dict | None = None) -> dict:
        logger.debug("{} {}", method, self._url(path))
        try:
            response = self._session.request(
                method,
                self._url(path),
                json=json_payload,
                timeout=self.timeout,
            )
        except Exception as exc:
            logger.warning("{} {} failed: {}", method, path, exc)
            raise TransportError(str(exc)) from exc

        body: object | None
        try:
            body = response.json()
        except Exception:
            body = None

        if response.status_code >= 400:
            detail: object | None = None
            if isinstance(body, dict):
                detail = body.get("error") or body.get("detail")
            if isinstance(detail, str):
                message = f"request failed: {response.status_code} {detail}"
            else:
                message = f"request failed: {response.status_code} {response.text}"
            raise TransportError(
                message,
                status_code=response.status_code,
                detail=detail,
                body=body,
            )

        if not isinstance(body, dict):
            raise TransportError(
                f"malformed response from {path}: expected a JSON object",
                status_code=response.status_code,
                body=body,
            )
        return body

    def get_status(self) -> dict:
        return self._request("GET", "/")

    def create_accounts(self, *, promo_code: str, count: int, user_id: str | None) -> dict:
        try:
            request = CreateAccountsRequest(promo_code=promo_code, count=count, user_id=user_id)
        except SchemaError as exc:
            raise ValidationError(f"invalid create-accounts request: {exc}") from exc
        return self._request("POST", "/create-accounts", json_payload=request.model_dump())

    def get_accounts(self, *, user_id: str) -> dict:
        return self._request("POST", "/get-accounts", json_payload={"user_id": user_id})


__all__ = ["ProvisioningAPI", "DEFAULT_API_BASE", "API_BASE_ENV_VAR"]
