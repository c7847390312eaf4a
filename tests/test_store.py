import threading
import unittest

from errors import StorageError
from store import Store


def _product(**overrides):
	product = {
		"title": "Mens Casual Slim Fit",
		"price": 15.99,
		"description": "Slim fit cotton tee",
		"category": "men's clothing",
		"image": "https://example.com/tee.jpg",
		"sold": 0,
		"dateOfSale": "2021-12-27T20:29:54+05:30",
	}
	product.update(overrides)
	return product


class StoreTests(unittest.TestCase):
	def setUp(self) -> None:
		self.store = Store(":memory:")
		self.store.ensure_schema()

	def tearDown(self) -> None:
		self.store.close()

	def test_ensure_schema_is_idempotent(self):
		self.store.insert(_product())
		self.store.ensure_schema()
		self.assertEqual(self.store.count(), 1)

	def test_insert_assigns_increasing_ids(self):
		first = self.store.insert(_product(title="A"))
		second = self.store.insert(_product(title="B"))
		self.assertGreater(second, first)
		rows = self.store.query("SELECT id, title FROM products ORDER BY id")
		self.assertEqual([r["title"] for r in rows], ["A", "B"])

	def test_insert_binds_quotes_and_sql_verbatim(self):
		title = "Bob's \"quoted\" item'); DROP TABLE products; --"
		new_id = self.store.insert(_product(title=title))
		row = self.store.query_one("SELECT title FROM products WHERE id = ?", (new_id,))
		self.assertEqual(row["title"], title)
		self.assertEqual(self.store.count(), 1)

	def test_query_one_returns_none_when_no_row(self):
		self.assertIsNone(self.store.query_one("SELECT * FROM products WHERE id = ?", (42,)))

	def test_query_returns_plain_dicts(self):
		self.store.insert(_product())
		rows = self.store.query("SELECT * FROM products")
		self.assertIsInstance(rows[0], dict)
		self.assertEqual(rows[0]["category"], "men's clothing")
		self.assertEqual(rows[0]["sold"], 0)

	def test_bad_sql_raises_storage_error(self):
		with self.assertRaises(StorageError):
			self.store.query("SELECT * FROM missing_table")

	def test_insert_without_schema_raises_storage_error(self):
		bare = Store(":memory:")
		try:
			with self.assertRaises(StorageError):
				bare.insert(_product())
		finally:
			bare.close()

	def test_out_of_range_integer_raises_storage_error(self):
		with self.assertRaises(StorageError):
			self.store.query("SELECT * FROM products LIMIT ?", (10 ** 19,))
		with self.assertRaises(StorageError):
			self.store.query_one("SELECT ? AS n", (10 ** 19,))

	def test_concurrent_inserts_and_reads(self):
		failures = []

		def worker(prefix):
			try:
				for i in range(50):
					self.store.insert(_product(title=f"{prefix}-{i}"))
					self.store.count()
			except Exception as exc:
				failures.append(exc)

		threads = [threading.Thread(target=worker, args=(f"t{n}",)) for n in range(4)]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()

		self.assertEqual(failures, [])
		self.assertEqual(self.store.count(), 200)
		ids = [r["id"] for r in self.store.query("SELECT id FROM products")]
		self.assertEqual(len(set(ids)), 200)

	def test_unopenable_path_raises_storage_error(self):
		with self.assertRaises(StorageError):
			Store("/nonexistent-dir/for/sure/amazon.db")


if __name__ == "__main__":
	unittest.main()
