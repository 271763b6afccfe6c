"""Key-path document store used for all persistent data.

Paths are slash-delimited (``students/<id>/mealsToday/lunch``). Two
operations are available: ``read(path)`` returning the value at a path or
``None`` when absent, and ``update(mapping)`` applying several
``path -> value`` writes as one atomic multi-path update.
"""
import copy
import logging
from functools import lru_cache

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the store cannot be read or written."""


def student_path(student_id):
    return f"students/{student_id}"


def meal_flag_path(student_id, meal):
    return f"students/{student_id}/mealsToday/{meal}"


def meal_log_path(day, student_id, meal=None):
    if meal is None:
        return f"mealLogs/{day}/{student_id}"
    return f"mealLogs/{day}/{student_id}/{meal}"


def split_path(path):
    return [part for part in path.strip('/').split('/') if part]


class DocumentStore:
    async def read(self, path):
        raise NotImplementedError

    async def update(self, values):
        raise NotImplementedError


class InMemoryStore(DocumentStore):
    """Process-local store with the same path semantics as Firebase."""

    def __init__(self, data=None):
        self.data = copy.deepcopy(data) if data else {}

    async def read(self, path):
        node = self.data
        for part in split_path(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    async def update(self, values):
        # Applied without suspending, so the whole mapping lands at once
        for path, value in values.items():
            self._set(split_path(path), copy.deepcopy(value))

    def _set(self, parts, value):
        if not parts:
            raise StoreError("Cannot write to the store root")
        node = self.data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value


class FirebaseRealtimeStore(DocumentStore):
    """Firebase Realtime Database over its REST interface."""

    def __init__(self, database_url, auth_token=None, timeout=None, transport=None):
        if not database_url:
            raise StoreError("FIREBASE_DATABASE_URL is not configured")
        self.database_url = database_url.rstrip('/')
        self.auth_token = auth_token
        self.timeout = timeout
        self.transport = transport

    def _url(self, path):
        return f"{self.database_url}/{'/'.join(split_path(path))}.json"

    def _params(self):
        return {'auth': self.auth_token} if self.auth_token else {}

    def _client(self):
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def read(self, path):
        try:
            async with self._client() as client:
                response = await client.get(self._url(path), params=self._params())
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"Store read failed for {path}: {exc}")
            raise StoreError(f"read {path} failed") from exc

    async def update(self, values):
        body = {'/'.join(split_path(path)): value for path, value in values.items()}
        try:
            async with self._client() as client:
                response = await client.patch(
                    f"{self.database_url}/.json",
                    params=self._params(),
                    json=body,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(f"Store update failed for {sorted(body)}: {exc}")
            raise StoreError("multi-path update failed") from exc


@lru_cache(maxsize=1)
def get_store():
    """Build the configured store once per process."""
    config = settings.DOCUMENT_STORE
    backend = config.get('BACKEND', 'firebase')
    if backend == 'memory':
        logger.warning("Using in-memory document store; data is not persisted")
        return InMemoryStore()
    if backend == 'firebase':
        return FirebaseRealtimeStore(
            config.get('DATABASE_URL'),
            auth_token=config.get('AUTH_TOKEN'),
            timeout=config.get('TIMEOUT'),
        )
    raise StoreError(f"Unknown store backend: {backend}")
