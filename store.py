"""SQLite-backed single-table store for product transactions."""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

from errors import StorageError

logger = logging.getLogger("transaction_report.store")

PRODUCT_FIELDS = ("title", "price", "description", "category", "image", "sold", "dateOfSale")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS products (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT,
    price       REAL,
    description TEXT,
    category    TEXT,
    image       TEXT,
    sold        INTEGER,
    dateOfSale  TEXT
);
"""

_INSERT = (
	"INSERT INTO products (title, price, description, category, image, sold, dateOfSale) "
	"VALUES (?, ?, ?, ?, ?, ?, ?)"
)


class Store:
	"""Owns one SQLite connection and the ``products`` table.

	Pass ``":memory:"`` for an isolated throwaway instance. The connection
	is shared across request threads, so every statement runs under
	``self._lock``.
	"""

	def __init__(self, path: str) -> None:
		self.path = path
		self._lock = threading.Lock()
		try:
			self._conn = sqlite3.connect(path, check_same_thread=False)
			self._conn.row_factory = sqlite3.Row
			# search must match substrings case-sensitively
			self._conn.execute("PRAGMA case_sensitive_like = ON")
		except sqlite3.Error as exc:
			raise StorageError(f"could not open database {path!r}: {exc}") from exc
		logger.debug("Opened product store at %s", path)

	def ensure_schema(self) -> None:
		try:
			with self._lock, self._conn:
				self._conn.executescript(_SCHEMA)
		except sqlite3.Error as exc:
			raise StorageError(f"could not create schema: {exc}") from exc

	def insert(self, product: Mapping[str, Any]) -> int:
		"""Append one row and return its id. Every field is a bound parameter."""
		params = tuple(product.get(field) for field in PRODUCT_FIELDS)
		try:
			with self._lock, self._conn:
				cur = self._conn.execute(_INSERT, params)
		except (sqlite3.Error, OverflowError) as exc:
			raise StorageError(f"insert failed: {exc}") from exc
		return int(cur.lastrowid)

	def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
		try:
			with self._lock:
				rows = self._conn.execute(sql, tuple(params)).fetchall()
		except (sqlite3.Error, OverflowError) as exc:
			raise StorageError(f"query failed: {exc}") from exc
		return [dict(row) for row in rows]

	def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
		try:
			with self._lock:
				row = self._conn.execute(sql, tuple(params)).fetchone()
		except (sqlite3.Error, OverflowError) as exc:
			raise StorageError(f"query failed: {exc}") from exc
		if row is None:
			return None
		return dict(row)

	def count(self) -> int:
		row = self.query_one("SELECT COUNT(*) AS c FROM products")
		return int(row["c"]) if row else 0

	def close(self) -> None:
		with self._lock:
			self._conn.close()
