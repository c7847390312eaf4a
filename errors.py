class ReportingError(Exception):
	"""Base error; ``status`` is the HTTP code it maps to at the request boundary."""

	status = 500


class StorageError(ReportingError):
	"""Schema, write or read failure in the product store."""


class RemoteFetchError(ReportingError):
	"""Network or parse failure while fetching the transaction feed."""


class ValidationError(ReportingError):
	status = 400
