from __future__ import annotations

import json
import logging
from collections.abc import Callable
from contextlib import contextmanager
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import httpx

from taketwo.config import settings
from taketwo.errors import TransportError

logger = logging.getLogger(__name__)


class RequestTracker:
    """Counts requests in flight for one client and notifies listeners on change."""

    def __init__(self) -> None:
        self.in_flight = 0
        self._listeners: list[Callable[[int], None]] = []

    def subscribe(self, listener: Callable[[int], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.in_flight)

    @contextmanager
    def track(self):
        self.in_flight += 1
        self._notify()
        try:
            yield
        finally:
            self.in_flight = max(0, self.in_flight - 1)
            self._notify()


class ApiClient:
    """Thin JSON client for the entries backend.

    Forwards the session token on every call and turns any non-success
    answer into a TransportError; retrying is left to the caller.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout_seconds: int | None = None,
        tracker: RequestTracker | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip('/')
        self.token = token
        self.timeout_seconds = timeout_seconds or settings.api_timeout_seconds
        self.tracker = tracker or RequestTracker()

    def set_token(self, token: str | None) -> None:
        self.token = token

    def _headers(self, content_type: str | None = 'application/json') -> dict[str, str]:
        headers = {'Accept': 'application/json'}
        if content_type:
            headers['Content-Type'] = content_type
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def request(self, method: str, path: str, payload: dict | None = None):
        data = json.dumps(payload).encode('utf-8') if payload is not None else None
        req = Request(
            url=f'{self.base_url}{path}',
            data=data,
            headers=self._headers('application/json' if data is not None else None),
            method=method,
        )
        with self.tracker.track():
            try:
                with urlopen(req, timeout=self.timeout_seconds) as response:
                    raw = response.read().decode('utf-8')
            except HTTPError as exc:
                detail = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
                logger.warning('%s %s failed with HTTP %s', method, path, exc.code)
                raise TransportError(detail or f'HTTP {exc.code} on {path}', status=exc.code) from exc
            except URLError as exc:
                logger.warning('%s %s network error: %s', method, path, exc.reason)
                raise TransportError(f'Network error on {path}: {exc.reason}') from exc
            except (TimeoutError, OSError, HTTPException) as exc:
                logger.warning('%s %s failed: %r', method, path, exc)
                raise TransportError(f'Connection failed on {path}: {exc}') from exc

        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TransportError(f'Invalid JSON from {path}') from exc

    def login(self, email: str, password: str) -> str:
        result = self.request('POST', '/auth/login', {'email': email, 'password': password})
        self.token = result['access_token']
        return self.token

    def logout(self) -> None:
        try:
            if self.token:
                self.request('POST', '/auth/logout')
        finally:
            self.token = None

    def upload(self, path: str, filename: str, payload: bytes, content_type: str) -> str:
        """Send one file as multipart/form-data and return the stored reference."""
        with self.tracker.track():
            try:
                response = httpx.post(
                    f'{self.base_url}{path}',
                    files={'file': (filename, payload, content_type)},
                    headers=self._headers(None),
                    timeout=self.timeout_seconds,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                code = exc.response.status_code
                logger.warning('POST %s upload failed with HTTP %s', path, code)
                raise TransportError(exc.response.text or f'HTTP {code} on {path}', status=code) from exc
            except httpx.HTTPError as exc:
                logger.warning('POST %s upload failed: %r', path, exc)
                raise TransportError(f'Network error on {path}: {exc}') from exc

        try:
            return response.json()['url']
        except (ValueError, KeyError, TypeError) as exc:
            raise TransportError(f'Invalid upload response from {path}') from exc
