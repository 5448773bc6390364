"""Answer analytics: record quiz responses to an HTTP collector."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import requests
from pydantic import BaseModel, Field

logger = logging.getLogger("DeckPlayer.services.analytics")


class AnswerEvent(BaseModel):
    """One answer submitted on one slide."""
    slide_id: str
    answer: Any = None
    slide_title: str = ""
    instance_id: Optional[str] = None
    answered_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AnalyticsSink(Protocol):
    def record_answer(self, event: AnswerEvent) -> None: ...


class NullAnalytics:
    def record_answer(self, event: AnswerEvent) -> None:
        pass


class HttpAnalyticsSink:
    """POSTs answer events as JSON. Delivery is best-effort.

    With ``background=True`` (the default) requests run on a single worker
    thread so the playback loop never waits on the network.
    """

    def __init__(self, endpoint: str, instance_id: Optional[str] = None,
                 timeout: float = 10.0, background: bool = True):
        self.endpoint = endpoint
        self.instance_id = instance_id
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1) if background else None

    def record_answer(self, event: AnswerEvent) -> None:
        if event.instance_id is None and self.instance_id is not None:
            event = event.model_copy(update={"instance_id": self.instance_id})
        payload = event.model_dump(mode="json")

        if self._executor is None:
            self._post(payload)
            return
        future = self._executor.submit(self._post, payload)
        future.add_done_callback(_log_failure)

    def _post(self, payload: dict) -> None:
        try:
            resp = requests.post(self.endpoint, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            logger.debug(f"Recorded answer for slide '{payload['slide_id']}'")
        except requests.RequestException as e:
            logger.warning(f"Failed to record answer for slide '{payload['slide_id']}': {e}")

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)


def _log_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error(f"Analytics worker error: {exc}")
