import pytest

import barcode_label_studio as bls
import barcode_label_studio.binding
import barcode_label_studio.errors
import barcode_label_studio.template


TextElement = bls.template.TextElement
BarcodeElement = bls.template.BarcodeElement
ShapeElement = bls.template.ShapeElement


#============================================
def test_literal_never_reads_row() -> None:
	"""
	Ensure a literal text resolves to itself with or without data.
	"""
	element = TextElement(id="title", content="Fresh")
	assert bls.binding.resolve(element, None) == "Fresh"
	assert bls.binding.resolve(element, {"title": "other"}) == "Fresh"


#============================================
def test_bound_text_uses_cell_or_column_name() -> None:
	"""
	Ensure bound text shows the cell, or the column name when unavailable.
	"""
	element = TextElement(id="name", data_field="Product")
	assert bls.binding.resolve(element, {"Product": "Apple"}) == "Apple"
	assert bls.binding.resolve(element, {"Product": ""}) == "Product"
	assert bls.binding.resolve(element, {"Other": "x"}) == "Product"
	assert bls.binding.resolve(element, None) == "Product"


#============================================
def test_numbers_format_without_trailing_zero() -> None:
	"""
	Ensure whole floats from spreadsheets print as integers.
	"""
	element = TextElement(id="price", data_field="Price")
	assert bls.binding.resolve(element, {"Price": 12.0}) == "12"
	assert bls.binding.resolve(element, {"Price": 12.5}) == "12.5"
	assert bls.binding.resolve(element, {"Price": 7}) == "7"


#============================================
def test_barcode_resolution() -> None:
	"""
	Ensure barcodes use the mapped cell, else the symbology sample value.
	"""
	bound = BarcodeElement(id="code", data_field="SKU", symbology="UPC_A")
	assert bls.binding.resolve(bound, {"SKU": " 012345678905 "}) == "012345678905"
	assert bls.binding.resolve(bound, {"SKU": ""}) == "123456789012"
	unmapped = BarcodeElement(id="code", symbology="CODE39")
	assert bls.binding.resolve(unmapped, {"SKU": "x"}) == "SAMPLE"
	literal = BarcodeElement(id="code", value="ABC", symbology="CODE128")
	assert bls.binding.resolve(literal, None) == "ABC"


#============================================
def test_column_mapping_binds_like_data_field() -> None:
	"""
	Ensure a column mapping entry acts as the element's data field.
	"""
	element = TextElement(id="name")
	assert bls.binding.resolve(element, {"Product": "Pear"}, {"name": "Product"}) == "Pear"


#============================================
def test_missing_cells_collect_warnings() -> None:
	"""
	Ensure missing and empty cells are reported, not raised.
	"""
	template = bls.template.LabelTemplate(
		width=2.0,
		height=1.0,
		elements=(
			TextElement(id="name", data_field="Product"),
			BarcodeElement(id="code", data_field="SKU"),
		),
	)
	issues: list = []
	values = bls.binding.resolve_values(template, {"Product": ""}, issues=issues, row_index=4)
	assert values == {"name": "Product", "code": "1234567890123"}
	assert len(issues) == 2
	assert all(isinstance(issue, bls.errors.DataBindingWarning) for issue in issues)
	assert issues[0].reason == "is empty"
	assert issues[1].reason == "is missing"
	assert "(row 5)" in str(issues[0])
	# no data loaded yet is a design-time preview, not a data problem
	preview_issues: list = []
	bls.binding.resolve_values(template, None, issues=preview_issues)
	assert preview_issues == []


#============================================
def test_unbindable_element_rejected() -> None:
	"""
	Ensure shapes cannot be resolved as bound content.
	"""
	with pytest.raises(TypeError):
		bls.binding.resolve(ShapeElement(id="box"), {})
