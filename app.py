from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Optional

import dicttoxml
import requests
from flask import Flask, Response, jsonify, make_response, request
from werkzeug.exceptions import BadRequest, HTTPException, NotFound

from config import Config
from errors import ReportingError, StorageError
from ingest import Ingestor
from logging_config import setup_logging
from queries import QueryService
from store import Store


logger = logging.getLogger("transaction_report.api")


def _parse_int(value: Any, field: str, *, default: int, minimum: Optional[int] = None) -> int:
	if value is None or value == "":
		return default
	try:
		parsed = int(value)
	except (TypeError, ValueError):
		raise BadRequest(f"{field} must be an integer")
	if minimum is not None and parsed < minimum:
		raise BadRequest(f"{field} must be >= {minimum}")
	return parsed


def _get_format() -> str:
	fmt = (request.args.get("format") or "json").strip().lower()
	if fmt not in {"json", "xml"}:
		raise BadRequest("format must be 'json' or 'xml'")
	return fmt


def _to_xml(payload: Any, root: str = "response") -> bytes:
	# dicttoxml wraps lists; make output predictable
	return dicttoxml.dicttoxml(payload, custom_root=root, attr_type=False)


def api_response(payload: Any, status: int = 200, *, root: str = "response") -> Response:
	fmt = _get_format()
	if fmt == "xml":
		xml_bytes = _to_xml(payload, root=root)
		resp = make_response(xml_bytes, status)
		resp.headers["Content-Type"] = "application/xml; charset=utf-8"
		return resp
	return make_response(jsonify(payload), status)


def error_response(message: str, status: int, *, details: Optional[Dict[str, Any]] = None) -> Response:
	payload: Dict[str, Any] = {"error": message, "status": status}
	if details:
		payload["details"] = details
	try:
		return api_response(payload, status=status, root="error")
	except BadRequest:
		# the format parameter itself was invalid
		return make_response(jsonify(payload), status)


def _handle_error(exc: ReportingError, action: str) -> Response:
	if exc.status < 500:
		logger.warning("%s rejected: %s", action, exc)
		return error_response(str(exc), exc.status)
	logger.exception("Error %s", action)
	return error_response(f"Error {action}: {exc}", exc.status)


def create_app(
	test_config: Optional[Dict[str, Any]] = None,
	*,
	store: Optional[Store] = None,
	session: Optional[requests.Session] = None,
) -> Flask:
	app = Flask(__name__)
	app.config.from_object(Config)

	# Ensure env vars always take precedence (Config class attributes are evaluated at import time).
	def _env(name: str, default: Any) -> Any:
		value = os.getenv(name)
		if value is None:
			return default
		return value

	app.config["DATABASE_PATH"] = _env("DATABASE_PATH", app.config.get("DATABASE_PATH"))
	app.config["SOURCE_URL"] = _env("SOURCE_URL", app.config.get("SOURCE_URL"))
	app.config["FETCH_TIMEOUT"] = float(_env("FETCH_TIMEOUT", app.config.get("FETCH_TIMEOUT", 10)))
	app.config["DEFAULT_IMAGE"] = _env("DEFAULT_IMAGE", app.config.get("DEFAULT_IMAGE"))
	app.config["MAX_PER_PAGE"] = int(_env("MAX_PER_PAGE", app.config.get("MAX_PER_PAGE", 0)))
	app.config["LOG_LEVEL"] = _env("LOG_LEVEL", app.config.get("LOG_LEVEL", "INFO"))

	if test_config:
		app.config.update(test_config)

	if store is None:
		store = Store(app.config["DATABASE_PATH"])
	store.ensure_schema()

	ingestor = Ingestor(
		store,
		app.config["SOURCE_URL"],
		session=session,
		timeout=app.config["FETCH_TIMEOUT"],
		default_image=app.config["DEFAULT_IMAGE"],
	)
	queries = QueryService(store, max_per_page=app.config["MAX_PER_PAGE"])
	app.extensions["transaction_report"] = {"store": store, "ingestor": ingestor, "queries": queries}

	@app.get("/health")
	def health() -> Response:
		return api_response({"status": "ok"})

	# -------------------------
	# Ingestion
	# -------------------------
	@app.get("/api/init-db")
	def init_db() -> Response:
		try:
			ingestor.load_from_remote()
		except ReportingError as e:
			return _handle_error(e, "initializing the database")
		return Response("Database initialized and populated with products.", status=200, mimetype="text/plain")

	# -------------------------
	# Search
	# -------------------------
	@app.get("/api/products")
	def list_products() -> Response:
		search = request.args.get("search", "")
		page = _parse_int(request.args.get("page"), "page", default=1, minimum=1)
		per_page = _parse_int(request.args.get("perPage"), "perPage", default=10, minimum=1)
		try:
			result = queries.search(search, page, per_page)
		except ReportingError as e:
			return _handle_error(e, "fetching products")
		return api_response(result)

	# -------------------------
	# Statistics
	# -------------------------
	@app.get("/api/statistics")
	def statistics() -> Response:
		try:
			return api_response(queries.totals(request.args.get("month")))
		except ReportingError as e:
			return _handle_error(e, "fetching statistics")

	@app.get("/api/price-range-statistics")
	def price_range_statistics() -> Response:
		try:
			return api_response(queries.price_range_histogram(request.args.get("month")))
		except ReportingError as e:
			return _handle_error(e, "fetching price range statistics")

	@app.get("/api/category-statistics")
	def category_statistics() -> Response:
		try:
			return api_response(queries.category_breakdown(request.args.get("month")))
		except ReportingError as e:
			return _handle_error(e, "fetching category statistics")

	@app.get("/api/combined-statistics")
	def combined_statistics() -> Response:
		try:
			return api_response(queries.combined(request.args.get("month")))
		except ReportingError as e:
			return _handle_error(e, "fetching combined statistics")

	# -------------------------
	# Consistent JSON/XML errors
	# -------------------------
	@app.errorhandler(BadRequest)
	def _bad_request(err: BadRequest):
		return error_response(str(err.description or "Bad request"), 400)

	@app.errorhandler(NotFound)
	def _not_found(err: NotFound):
		return error_response("Not found", 404)

	@app.errorhandler(Exception)
	def _unhandled(err: Exception):
		if isinstance(err, HTTPException):
			return error_response(str(err.description or err.name), err.code or 500)
		logger.exception("Unhandled error on %s", request.path)
		return error_response("Internal server error", 500)

	return app


if __name__ == "__main__":
	setup_logging(os.getenv("LOG_LEVEL", Config.LOG_LEVEL))
	try:
		app = create_app()
	except StorageError as exc:
		logger.critical("DB Error: %s", exc)
		sys.exit(1)
	port = int(os.getenv("PORT", Config.PORT))
	app.run(host="0.0.0.0", port=port)
