"""
Quantity plans and label planning.
"""

# Standard Library
import csv
import dataclasses
import json
import math
import pathlib
import re
import types
import typing

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.binding
import barcode_label_studio.config
import barcode_label_studio.errors
import barcode_label_studio.template


LabelTemplate = bls.template.LabelTemplate
BarcodeElement = bls.template.BarcodeElement
ValidationError = bls.errors.ValidationError
DataRow = bls.binding.DataRow

QUANTITY_POLICIES = bls.config.QUANTITY_POLICIES
DEFAULT_QUANTITY = bls.config.DEFAULT_QUANTITY

LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


#============================================
def parse_quantity(value: typing.Any, default: int = DEFAULT_QUANTITY) -> int:
	"""
	Read a leading integer from a cell value.

	Args:
		value: Cell value, e.g. "3", 3, 2.0 or "4 pcs".

	Returns:
		Parsed integer, or default when none is found.
	"""
	if value is None or isinstance(value, bool):
		return default
	if isinstance(value, int):
		return value
	if isinstance(value, float):
		if math.isnan(value) or math.isinf(value):
			return default
		return int(value)
	match = LEADING_INTEGER.match(str(value))
	if match is None:
		return default
	return int(match.group(1))


@dataclasses.dataclass(frozen=True)
class QuantityPlan:
	policy: str = "fixed"
	column: str | None = None
	fixed_quantity: int = DEFAULT_QUANTITY
	manual: dict[int, int] = dataclasses.field(default_factory=dict)

	def __post_init__(self) -> None:
		if self.policy not in QUANTITY_POLICIES:
			raise ValidationError(f"unknown quantity policy '{self.policy}'")
		if self.policy == "column" and not self.column:
			raise ValidationError("column quantity policy needs a column")

	#============================================
	def resolve_quantity(self, row_index: int, row: DataRow) -> int:
		"""
		Number of copies to emit for one row.

		Args:
			row_index: Zero-based row index.
			row: Data row.

		Returns:
			Copy count; zero or less means the row is skipped.
		"""
		if self.policy == "column":
			return parse_quantity(row.get(self.column))
		if self.policy == "manual":
			return int(self.manual.get(row_index, DEFAULT_QUANTITY))
		return int(self.fixed_quantity)


@dataclasses.dataclass(frozen=True)
class GeneratedLabel:
	row_index: int
	copy_index: int
	sequence_index: int
	template: LabelTemplate
	values: typing.Mapping[str, str]
	barcode_value: str | None = None


#============================================
def primary_barcode(template: LabelTemplate) -> BarcodeElement | None:
	for element in bls.template.iter_elements(template.elements):
		if isinstance(element, BarcodeElement):
			return element
	return None


#============================================
def has_blank_barcode(template: LabelTemplate, row: DataRow) -> bool:
	"""
	Check whether the row leaves the bound barcode column blank.

	Args:
		template: Template snapshot.
		row: Data row.

	Returns:
		True when the first barcode element is bound and its cell is blank.
	"""
	element = primary_barcode(template)
	if element is None:
		return False
	field = bls.template.bound_field(element, template.column_mapping)
	if not field:
		return False
	_text, problem = bls.binding.lookup_cell(row, field)
	return problem is not None


#============================================
def plan_labels(
	template: LabelTemplate,
	rows: list[DataRow],
	plan: QuantityPlan,
	skip_blank_barcode: bool = False,
	issues: list | None = None,
) -> typing.Iterator[GeneratedLabel]:
	"""
	Expand rows into generated labels in output order.

	Rows keep their order; the copies of one row are contiguous.

	Args:
		template: Template snapshot shared by every label.
		rows: Data rows.
		plan: Quantity plan.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.
		issues: Optional list collecting binding warnings.

	Yields:
		GeneratedLabel per (row, copy).
	"""
	barcode_element = primary_barcode(template)
	sequence = 0
	for row_index, row in enumerate(rows):
		quantity = plan.resolve_quantity(row_index, row)
		if quantity <= 0:
			continue
		if skip_blank_barcode and has_blank_barcode(template, row):
			continue
		values = bls.binding.resolve_values(template, row, issues=issues, row_index=row_index)
		frozen = types.MappingProxyType(values)
		barcode_value = None
		if barcode_element is not None:
			barcode_value = values.get(barcode_element.id)
		for copy_index in range(quantity):
			sequence += 1
			yield GeneratedLabel(
				row_index=row_index,
				copy_index=copy_index,
				sequence_index=sequence,
				template=template,
				values=frozen,
				barcode_value=barcode_value,
			)


#============================================
def total_labels(
	template: LabelTemplate,
	rows: list[DataRow],
	plan: QuantityPlan,
	skip_blank_barcode: bool = False,
) -> int:
	"""
	Count the labels a plan produces without resolving content.

	Args:
		template: Template snapshot.
		rows: Data rows.
		plan: Quantity plan.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.

	Returns:
		Label count.
	"""
	total = 0
	for row_index, row in enumerate(rows):
		quantity = plan.resolve_quantity(row_index, row)
		if quantity <= 0:
			continue
		if skip_blank_barcode and has_blank_barcode(template, row):
			continue
		total += quantity
	return total


#============================================
def summarize_plan(
	template: LabelTemplate,
	rows: list[DataRow],
	plan: QuantityPlan,
	labels_per_page: int | None = None,
	skip_blank_barcode: bool = False,
) -> dict[str, int]:
	"""
	Summarize products, labels and pages for a plan.

	Args:
		template: Template snapshot.
		rows: Data rows.
		plan: Quantity plan.
		labels_per_page: Grid capacity, when a print layout is known.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.

	Returns:
		Mapping with products, labels, skipped_rows and pages.
	"""
	labels = total_labels(template, rows, plan, skip_blank_barcode)
	skipped = 0
	for row_index, row in enumerate(rows):
		if plan.resolve_quantity(row_index, row) <= 0:
			skipped += 1
		elif skip_blank_barcode and has_blank_barcode(template, row):
			skipped += 1
	pages = 0
	if labels_per_page:
		pages = (labels + labels_per_page - 1) // labels_per_page
	return {
		"products": len(rows),
		"labels": labels,
		"skipped_rows": skipped,
		"pages": pages,
	}


#============================================
def load_rows(path: pathlib.Path) -> tuple[list[dict], list[str]]:
	"""
	Load data rows from a CSV or JSON file.

	JSON input is a list of objects, or an object with "rows" and
	optionally "columns".

	Args:
		path: Data file path.

	Returns:
		Tuple of (rows, column_names) in file order.
	"""
	if path.suffix.lower() == ".json":
		with path.open("r", encoding="utf-8") as handle:
			data = json.load(handle)
		columns: list[str] = []
		if isinstance(data, dict):
			columns = list(data.get("columns", []))
			data = data.get("rows", [])
		if not isinstance(data, list):
			raise ValidationError(f"{path} does not hold a list of rows")
		rows = [dict(item) for item in data]
		if not columns:
			for row in rows:
				for key in row:
					if key not in columns:
						columns.append(key)
		return (rows, columns)
	with path.open("r", encoding="utf-8-sig", newline="") as handle:
		reader = csv.DictReader(handle)
		rows = [dict(row) for row in reader]
		columns = list(reader.fieldnames or [])
	return (rows, columns)


#============================================
def load_manual_quantities(path: pathlib.Path) -> dict[int, int]:
	"""
	Load a manual quantity map from JSON.

	Keys are one-based row numbers, as shown to users.

	Args:
		path: JSON file mapping row number to quantity.

	Returns:
		Mapping of zero-based row index to quantity.
	"""
	with path.open("r", encoding="utf-8") as handle:
		data = json.load(handle)
	return {int(key) - 1: parse_quantity(value, 0) for key, value in data.items()}
