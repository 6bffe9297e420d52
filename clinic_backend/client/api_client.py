import logging
from typing import Optional

import httpx

from clinic_backend.client.session import ClientSession
from clinic_backend.core import config

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the clinic API."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class ApiClient:
    """Synchronous client for the clinic REST API."""

    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        session: Optional[ClientSession] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or ClientSession().load()
        self.http = http or httpx.Client(timeout=10.0)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def _request(self, method: str, path: str, **kwargs) -> dict | list:
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"API request failed: {method} {path} -> {exc}")
            raise ApiError(0, "NETWORK_ERROR", str(exc)) from exc

        if resp.status_code >= 400:
            logger.error(f"API error: {method} {path} -> {resp.status_code}")
            try:
                error = resp.json().get("error", {})
            except ValueError:
                error = {}
            raise ApiError(
                resp.status_code,
                error.get("code", "INTERNAL_ERROR"),
                error.get("message", "Something went wrong"),
            )

        return resp.json()

    def _authenticate(self, path: str, payload: dict) -> dict:
        data = self._request("POST", path, json=payload)
        self.session.set(data["token"], data["user"])
        return data

    def register(self, name: str, email: str, password: str) -> dict:
        return self._authenticate("/register", {"name": name, "email": email, "password": password})

    def login(self, email: str, password: str) -> dict:
        return self._authenticate("/login", {"email": email, "password": password})

    def logout(self) -> None:
        self.session.clear()

    def get_slots(self, start: str | None = None, end: str | None = None) -> list:
        params = {}
        if start:
            params["from"] = start
        if end:
            params["to"] = end
        return self._request("GET", "/slots", params=params)

    def book_slot(self, slot_id: int) -> dict:
        return self._request("POST", "/book", json={"slotId": slot_id})

    def get_my_bookings(self) -> list:
        return self._request("GET", "/my-bookings")

    def get_all_bookings(self) -> list:
        return self._request("GET", "/all-bookings")

    def close(self) -> None:
        self.http.close()
