"""
Exception taxonomy for template validation, barcodes and export.
"""


class LabelStudioError(Exception):
	"""
	Base error for the label engine.
	"""


class ValidationError(LabelStudioError):
	"""
	Template is malformed; raised before any rendering begins.
	"""


class BarcodeError(LabelStudioError):
	"""
	Barcode value cannot be encoded in the requested symbology.

	Recovered inside the barcode generator, never seen by the export loop.
	"""

	INVALID_FORMAT = "InvalidFormat"
	CHECKSUM_MISMATCH = "ChecksumMismatch"
	INVALID_CHARACTERS = "InvalidCharacters"
	INVALID_LENGTH = "InvalidLength"

	def __init__(self, reason: str, message: str) -> None:
		super().__init__(message)
		self.reason = reason


class ExportConfigError(LabelStudioError):
	"""
	Print layout cannot hold a single label.
	"""


class ExportCancelled(LabelStudioError):
	"""
	Batch export was cancelled between two labels.
	"""


class DataBindingWarning(UserWarning):
	"""
	Bound column missing or empty; collected, never raised.
	"""

	def __init__(self, element_id: str, field: str, reason: str, row_index: int | None = None) -> None:
		message = f"{element_id}: column '{field}' {reason}"
		if row_index is not None:
			message += f" (row {row_index + 1})"
		super().__init__(message)
		self.element_id = element_id
		self.field = field
		self.reason = reason
		self.row_index = row_index
