"""
Data binding: resolve element content from a data row.
"""

# Standard Library
import typing

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.barcodes
import barcode_label_studio.errors
import barcode_label_studio.template


DataBindingWarning = bls.errors.DataBindingWarning
TextElement = bls.template.TextElement
BarcodeElement = bls.template.BarcodeElement
LabelTemplate = bls.template.LabelTemplate

DataRow = typing.Mapping[str, typing.Any]


#============================================
def format_cell(value: typing.Any) -> str:
	"""
	Format a raw cell value as display text.

	Args:
		value: String, number or None from the parser.

	Returns:
		Display string; whole floats lose their ".0".
	"""
	if value is None:
		return ""
	if isinstance(value, bool):
		return str(value)
	if isinstance(value, float) and value.is_integer():
		return str(int(value))
	return str(value)


#============================================
def lookup_cell(row: DataRow | None, field: str) -> tuple[str, str | None]:
	"""
	Look up a column in a row.

	Args:
		row: Data row or None.
		field: Column name.

	Returns:
		Tuple of (text, problem) where problem names why text is empty.
	"""
	if row is None:
		return ("", "has no data row")
	if field not in row:
		return ("", "is missing")
	text = format_cell(row[field])
	if not text.strip():
		return ("", "is empty")
	return (text, None)


#============================================
def resolve(
	element: TextElement | BarcodeElement,
	row: DataRow | None,
	column_mapping: dict[str, str] | None = None,
	issues: list[DataBindingWarning] | None = None,
	row_index: int | None = None,
) -> str:
	"""
	Resolve the display string of a bindable element.

	A literal never consults the row. A bound text element whose cell is
	missing or empty shows the column name; a barcode shows the sample
	value of its symbology, so previews are never blank.

	Args:
		element: Text or barcode element.
		row: Data row, or None when no data is loaded.
		column_mapping: Optional element id to column mapping.
		issues: Optional list collecting binding warnings.
		row_index: Row index used in warnings.

	Returns:
		Resolved string, never empty for bound text.
	"""
	field = bls.template.bound_field(element, column_mapping)
	if isinstance(element, TextElement):
		if element.content is not None and not field:
			return element.content
		if not field:
			return ""
		text, problem = lookup_cell(row, field)
		if problem is None:
			return text
		if issues is not None and row is not None:
			issues.append(DataBindingWarning(element.id, field, problem, row_index))
		return field
	if isinstance(element, BarcodeElement):
		if element.value is not None and not field:
			return element.value
		if not field:
			return bls.barcodes.sample_value(element.symbology)
		text, problem = lookup_cell(row, field)
		if problem is None:
			return text.strip()
		if issues is not None and row is not None:
			issues.append(DataBindingWarning(element.id, field, problem, row_index))
		return bls.barcodes.sample_value(element.symbology)
	raise TypeError(f"element '{element.id}' of kind '{element.kind}' is not bindable")


#============================================
def resolve_values(
	template: LabelTemplate,
	row: DataRow | None,
	issues: list[DataBindingWarning] | None = None,
	row_index: int | None = None,
) -> dict[str, str]:
	"""
	Resolve every bindable element of a template.

	Args:
		template: Template snapshot.
		row: Data row or None.
		issues: Optional list collecting binding warnings.
		row_index: Row index used in warnings.

	Returns:
		Mapping of element id to resolved string, in paint order.
	"""
	values: dict[str, str] = {}
	for element in bls.template.iter_elements(template.elements):
		if isinstance(element, (TextElement, BarcodeElement)):
			values[element.id] = resolve(
				element,
				row,
				template.column_mapping,
				issues=issues,
				row_index=row_index,
			)
	return values
