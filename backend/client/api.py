# backend/client/api.py
import itertools
import logging
from typing import Optional

import httpx

from client.state import (
    AppState, Confirm, Loaded, OptimisticPatch, Revert, WentOffline, reduce,
)

logger = logging.getLogger(__name__)

# Substrings of backend messages that mean "try again later" rather than "wrong request"
TRANSIENT_MARKERS = ("timeout", "timed out", "quota", "rate limit", "too many requests")
TRANSIENT_STATUS = {429, 503, 504}


class BackendUnavailable(Exception):
    """The backend cannot be reached and nothing is cached for the read."""


def is_transient(message: Optional[str]) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


class StockAppClient:
    """HTTP client keeping an ``AppState`` in step with the API.

    Reads refresh a collection and fall back to the last loaded snapshot when
    the backend is unreachable. Writes patch the state first and confirm or
    revert once the call returns.
    """

    def __init__(self, base_url: str = "http://localhost:8000", http: Optional[httpx.Client] = None,
                 timeout: float = 10.0):
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.state = AppState()
        self.token: Optional[str] = None
        self._loaded = set()
        self._ops = itertools.count(1)

    def dispatch(self, action) -> AppState:
        self.state = reduce(self.state, action)
        return self.state

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    # ---- auth ----

    def login(self, username: str, password: str) -> str:
        response = self.http.post("/login", json={"username": username, "password": password})
        response.raise_for_status()
        self.token = response.json()["access_token"]
        return self.token

    def logout(self) -> None:
        self.token = None

    # ---- reads ----

    def _offline(self, collection: str, reason: str) -> list:
        logger.warning("Backend unavailable while loading %s: %s", collection, reason)
        self.dispatch(WentOffline(reason))
        if collection not in self._loaded:
            raise BackendUnavailable(reason)
        return self.state.items(collection)

    def fetch(self, collection: str, path: str, params: Optional[dict] = None) -> list:
        try:
            response = self.http.get(path, params=params, headers=self._headers())
            response.raise_for_status()
        except httpx.TransportError as e:
            return self._offline(collection, str(e) or e.__class__.__name__)
        except httpx.HTTPStatusError as e:
            message = e.response.text
            if e.response.status_code in TRANSIENT_STATUS or is_transient(message):
                return self._offline(collection, message)
            logger.error("Loading %s failed: %s %s", collection, e.response.status_code, message)
            raise

        data = response.json()
        items = data["items"] if isinstance(data, dict) and "items" in data else data
        self.dispatch(Loaded(collection, tuple(items)))
        self._loaded.add(collection)
        return items

    def products(self) -> list:
        return self.fetch("products", "/products", params={"page_size": 10000})

    def exit_requests(self) -> list:
        return self.fetch("exit_requests", "/exit-requests", params={"page_size": 500})

    def orders(self) -> list:
        return self.fetch("orders", "/orders", params={"page_size": 200})

    # ---- writes ----

    def _write(self, collection: str, entity_id: int, changes: dict, method: str, path: str,
               json: Optional[dict] = None) -> dict:
        op_id = f"op-{next(self._ops)}"
        self.dispatch(OptimisticPatch(op_id, collection, entity_id, changes))
        try:
            response = self.http.request(method, path, json=json, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.dispatch(Revert(op_id, e.response.text))
            raise
        except httpx.TransportError as e:
            self.dispatch(Revert(op_id, str(e) or e.__class__.__name__))
            raise
        entity = response.json()
        self.dispatch(Confirm(op_id, entity))
        return entity

    def update_product(self, product_id: int, changes: dict) -> dict:
        return self._write("products", product_id, changes, "PATCH", f"/products/{product_id}", json=changes)

    def approve_request(self, request_id: int) -> dict:
        return self._write("exit_requests", request_id, {"status": "approved"},
                           "POST", f"/exit-requests/{request_id}/approve")

    def reject_request(self, request_id: int, reason: str) -> dict:
        return self._write("exit_requests", request_id, {"status": "rejected", "notes": reason},
                           "POST", f"/exit-requests/{request_id}/reject", json={"reason": reason})

    def receive_order(self, order_id: int) -> dict:
        return self._write("orders", order_id, {"status": "received"}, "POST", f"/orders/{order_id}/receive")

    def close(self) -> None:
        self.http.close()
