"""HTTP task service adapter - best-effort mirror of local mutations."""

import logging
from urllib.parse import quote

import requests

from tasksync.core.tasks import Task, tasks_from_records

logger = logging.getLogger(__name__)


class RemoteSyncError(Exception):
    """Raised when the remote collection cannot be fetched."""

    pass


class HttpTaskRemote:
    """
    HTTP task service adapter.

    Implements TaskRemote protocol. One attempt per call: no retries,
    no backoff. Mutation calls report success as a bool and never raise;
    only fetch_all raises, since its result replaces local state.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url.strip().rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, "tasks", *(quote(p, safe="") for p in parts)])

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Make a request, raising RemoteSyncError on network or HTTP errors."""
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise RemoteSyncError(f"{method} {url} failed: {e}") from e
        return resp

    def _send(self, method: str, url: str, **kwargs) -> bool:
        try:
            self._request(method, url, **kwargs)
        except RemoteSyncError as e:
            logger.warning(str(e))
            return False
        logger.debug(f"{method} {url} ok")
        return True

    def fetch_all(self) -> list[Task]:
        """Fetch the remote collection."""
        url = self._url()
        resp = self._request("GET", url)
        try:
            return tasks_from_records(resp.json())
        except ValueError as e:
            raise RemoteSyncError(f"GET {url} returned malformed tasks: {e}") from e

    def create(self, task: Task) -> bool:
        return self._send("POST", self._url(), json=task.to_record())

    def toggle(self, task_id: str) -> bool:
        return self._send("PATCH", self._url(task_id, "toggle"))

    def patch(self, task_id: str, fields: dict) -> bool:
        return self._send("PATCH", self._url(task_id), json=fields)

    def delete(self, task_id: str) -> bool:
        return self._send("DELETE", self._url(task_id))
