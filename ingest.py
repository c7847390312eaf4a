"""Load the remote transaction feed into the product store."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import requests

from errors import RemoteFetchError, StorageError
from store import PRODUCT_FIELDS, Store

logger = logging.getLogger("transaction_report.ingest")

DEFAULT_IMAGE = "default-image.jpg"


def normalize_sold(value: Any) -> bool:
	"""Only a literal ``True`` or the string ``"true"`` count as sold."""
	return value is True or value == "true"


def normalize_record(raw: Mapping[str, Any], default_image: str = DEFAULT_IMAGE) -> Dict[str, Any]:
	record = {field: raw.get(field) for field in PRODUCT_FIELDS}
	record["sold"] = 1 if normalize_sold(raw.get("sold")) else 0
	record["image"] = raw.get("image") or default_image
	return record


class Ingestor:
	"""Fetches the feed with ``requests`` and appends every record to the store.

	A batch stops at the first failed insert. Rows written before the
	failure stay committed and the error propagates to the caller.
	"""

	def __init__(
		self,
		store: Store,
		source_url: Optional[str] = None,
		*,
		session: Optional[requests.Session] = None,
		timeout: float = 10.0,
		default_image: str = DEFAULT_IMAGE,
	) -> None:
		self.store = store
		self.source_url = source_url
		self._session = session or requests.Session()
		self.timeout = timeout
		self.default_image = default_image

	def fetch(self, url: str) -> List[Dict[str, Any]]:
		logger.debug("GET %s (timeout=%ss)", url, self.timeout)
		try:
			response = self._session.get(url, timeout=self.timeout)
			response.raise_for_status()
		except requests.exceptions.Timeout as exc:
			raise RemoteFetchError(f"timed out after {self.timeout}s fetching {url}") from exc
		except requests.RequestException as exc:
			raise RemoteFetchError(f"request to {url} failed: {exc}") from exc

		try:
			payload = response.json()
		except ValueError as exc:
			raise RemoteFetchError(f"response from {url} is not valid JSON") from exc

		if not isinstance(payload, list):
			raise RemoteFetchError(f"expected a JSON array from {url}, got {type(payload).__name__}")
		for index, item in enumerate(payload):
			if not isinstance(item, dict):
				raise RemoteFetchError(f"record {index} from {url} is not an object")
		return payload

	def load_from_remote(self, url: Optional[str] = None) -> int:
		"""Fetch the feed and insert every record; returns the number inserted."""
		url = url or self.source_url
		if not url:
			raise RemoteFetchError("no source URL configured")

		transactions = self.fetch(url)
		inserted = 0
		for raw in transactions:
			try:
				self.store.insert(normalize_record(raw, self.default_image))
			except StorageError:
				logger.error(
					"Insert failed after %d of %d records; earlier rows remain", inserted, len(transactions)
				)
				raise
			inserted += 1
		logger.info("Inserted %d products from %s (%d rows in store)", inserted, url, self.store.count())
		return inserted
