"""Search and monthly statistics over the product store.

Month filters compare ``strftime('%m', dateOfSale)`` only, so a month
aggregates every year that shares it.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from errors import ValidationError
from store import Store

logger = logging.getLogger("transaction_report.queries")

DEFAULT_MONTH = "03"

SQLITE_MAX_INT = 2 ** 63 - 1

PRICE_BUCKETS = ("0-100", "101-200", "201-300", "301-400", "401-500", "501-above")

_SEARCH_WHERE = "WHERE title LIKE ? OR description LIKE ? OR CAST(price AS TEXT) LIKE ?"

_TOTALS_SQL = """
	SELECT
		COALESCE(SUM(price), 0) AS totalSaleAmount,
		COALESCE(SUM(CASE WHEN sold = 1 THEN 1 ELSE 0 END), 0) AS totalSoldItems,
		COALESCE(SUM(CASE WHEN sold = 0 THEN 1 ELSE 0 END), 0) AS totalNotSoldItems
	FROM products
	WHERE strftime('%m', dateOfSale) = ?
"""

# Upper-inclusive edges: fractional prices such as 100.5 still land in a bucket,
# and a missing price counts as 0.
_PRICE_RANGE_SQL = """
	SELECT
		COUNT(CASE WHEN COALESCE(price, 0) <= 100 THEN 1 END) AS "0-100",
		COUNT(CASE WHEN price > 100 AND price <= 200 THEN 1 END) AS "101-200",
		COUNT(CASE WHEN price > 200 AND price <= 300 THEN 1 END) AS "201-300",
		COUNT(CASE WHEN price > 300 AND price <= 400 THEN 1 END) AS "301-400",
		COUNT(CASE WHEN price > 400 AND price <= 500 THEN 1 END) AS "401-500",
		COUNT(CASE WHEN price > 500 THEN 1 END) AS "501-above"
	FROM products
	WHERE strftime('%m', dateOfSale) = ?
"""

_CATEGORY_SQL = """
	SELECT category, COUNT(*) AS itemCount
	FROM products
	WHERE strftime('%m', dateOfSale) = ?
	GROUP BY category
	ORDER BY category
"""


def _month_or_default(month: Optional[str]) -> str:
	if month is None or not str(month).strip():
		return DEFAULT_MONTH
	return str(month).strip()


def _required_month(month: Optional[str]) -> str:
	if month is None or not str(month).strip():
		raise ValidationError("Month parameter required.")
	return str(month).strip()


class QueryService:
	def __init__(self, store: Store, max_per_page: Optional[int] = None) -> None:
		self.store = store
		# None or 0 leaves page size unbounded
		self.max_per_page = max_per_page or None

	def search(self, search_term: str = "", page: int = 1, per_page: int = 10) -> Dict[str, Any]:
		"""Paginated substring search over title, description and price text.

		Rows come back in insertion order. ``%`` and ``_`` in the term keep
		their LIKE wildcard meaning.
		"""
		if page < 1:
			raise ValidationError("page must be >= 1")
		if per_page < 1:
			raise ValidationError("perPage must be >= 1")
		if self.max_per_page is not None and per_page > self.max_per_page:
			per_page = self.max_per_page

		pattern = f"%{search_term or ''}%"
		like_params = (pattern, pattern, pattern)
		offset = (page - 1) * per_page

		# past SQLite's integer range there is nothing left to return
		if offset > SQLITE_MAX_INT:
			products = []
		else:
			products = self.store.query(
				f"SELECT * FROM products {_SEARCH_WHERE} ORDER BY id LIMIT ? OFFSET ?",
				like_params + (min(per_page, SQLITE_MAX_INT), offset),
			)
		count_row = self.store.query_one(f"SELECT COUNT(*) AS count FROM products {_SEARCH_WHERE}", like_params)
		total_count = int(count_row["count"]) if count_row else 0

		return {
			"products": products,
			"pagination": {
				"totalCount": total_count,
				"totalPages": math.ceil(total_count / per_page),
				"currentPage": page,
				"perPage": per_page,
			},
		}

	def totals(self, month: Optional[str] = None) -> Dict[str, Any]:
		"""Sale amount over every row of the month, plus sold/unsold counts.

		The amount is not restricted to sold rows.
		"""
		month = _month_or_default(month)
		logger.debug("Fetching statistics for month %s", month)
		row = self.store.query_one(_TOTALS_SQL, (month,)) or {}
		return {
			"totalSaleAmount": row.get("totalSaleAmount") or 0,
			"totalSoldItems": row.get("totalSoldItems") or 0,
			"totalNotSoldItems": row.get("totalNotSoldItems") or 0,
		}

	def price_range_histogram(self, month: Optional[str]) -> Dict[str, int]:
		month = _required_month(month)
		row = self.store.query_one(_PRICE_RANGE_SQL, (month,)) or {}
		return {bucket: int(row.get(bucket) or 0) for bucket in PRICE_BUCKETS}

	def category_breakdown(self, month: Optional[str]) -> List[Dict[str, Any]]:
		month = _required_month(month)
		return self.store.query(_CATEGORY_SQL, (month,))

	def combined(self, month: Optional[str] = None) -> Dict[str, Any]:
		"""All three views for one month; defaults to March like ``totals``."""
		month = _month_or_default(month)
		logger.debug("Fetching combined statistics for month %s", month)
		return {
			"statistics": self.totals(month),
			"priceRangeStatistics": self.price_range_histogram(month),
			"categoryStatistics": self.category_breakdown(month),
		}
