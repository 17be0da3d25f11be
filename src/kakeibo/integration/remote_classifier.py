"""HTTP client for a remote category classification service."""

import logging
from typing import Any, Optional, Sequence

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from kakeibo.domain.entities import Category
from kakeibo.importing.drafts import DraftRow

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.8
DEFAULT_BATCH_SIZE = 25


class RemoteClassifier:
    """Suggests categories for unresolved draft rows.

    Only ever enriches suggestions: every failure is logged and treated as
    "no suggestion", so imports work the same with the service down.

    The service accepts ``POST /classify`` with::

        {"rows": [{"row_index", "description", "kind", "amount", "raw_category"}],
         "categories": [{"id", "name", "kind"}]}

    and answers ``{"results": [{"row_index", "category_id", "confidence"}]}``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self.min_confidence = min_confidence
        self.batch_size = max(1, batch_size)
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "RemoteClassifier":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        reraise=True,
    )
    def _post_batch(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = self._get_client().post("/classify", json=payload)
        response.raise_for_status()
        return response.json()

    def _parse_results(
        self, body: Any, rows: Sequence[DraftRow], category_ids: set[int]
    ) -> dict[int, int]:
        wanted = {row.row_index for row in rows}
        results = body.get("results") if isinstance(body, dict) else None
        if not isinstance(results, list):
            logger.warning("Classifier response has no result list")
            return {}

        suggestions: dict[int, int] = {}
        for item in results:
            try:
                row_index = int(item["row_index"])
                category_id = int(item["category_id"])
                confidence = float(item.get("confidence", 0.0))
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed classifier result: %r", item)
                continue
            if row_index not in wanted or category_id not in category_ids:
                continue
            if confidence < self.min_confidence:
                continue
            suggestions[row_index] = category_id
        return suggestions

    def suggest(self, rows: Sequence[DraftRow], categories: Sequence[Category]) -> dict[int, int]:
        """Ask the service for categories of ``rows``.

        Args:
            rows: Draft rows still lacking a category
            categories: Current category catalog

        Returns:
            Mapping of row index to suggested category ID; rows without a
            confident suggestion are left out
        """
        catalog = [{"id": c.id, "name": c.name, "kind": c.kind.value} for c in categories]
        category_ids = {c.id for c in categories}
        suggestions: dict[int, int] = {}

        for start in range(0, len(rows), self.batch_size):
            chunk = rows[start:start + self.batch_size]
            payload = {
                "rows": [
                    {
                        "row_index": row.row_index,
                        "description": row.description,
                        "kind": row.kind.value if row.kind else None,
                        "amount": row.amount,
                        "raw_category": row.raw_category,
                    }
                    for row in chunk
                ],
                "categories": catalog,
            }
            try:
                body = self._post_batch(payload)
            except httpx.TimeoutException as e:
                logger.warning("Classifier timeout: %s", e)
                continue
            except httpx.HTTPStatusError as e:
                logger.warning(
                    "Classifier returned error %d: %s",
                    e.response.status_code,
                    e.response.text[:200] if e.response.text else "no body",
                )
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Classification request failed (%s): %s", type(e).__name__, e)
                continue
            suggestions.update(self._parse_results(body, chunk, category_ids))

        logger.info("Classifier suggested %d of %d rows", len(suggestions), len(rows))
        return suggestions
