import json

import pytest

import barcode_label_studio as bls
import barcode_label_studio.errors
import barcode_label_studio.geometry
import barcode_label_studio.template
import barcode_label_studio.template_io


#============================================
def _designer_json() -> dict:
	"""
	Template as saved by the designer, with camelCase keys.

	Returns:
		Template mapping.
	"""
	return {
		"name": "Shelf tag",
		"width": 2.625,
		"height": 1,
		"layoutMode": "flow",
		"flow": {"flexDirection": "column", "justifyContent": "center", "alignItems": "stretch", "gap": 2, "padding": 0},
		"columnMapping": {"price": "Price"},
		"elements": [
			{"id": "code", "type": "barcode", "dataField": "SKU", "format": "EAN13", "size": {"widthPercent": 90, "heightPx": 40}},
			{
				"id": "row",
				"type": "group",
				"flow": {"direction": "row", "justify": "space-between"},
				"children": [
					{"id": "name", "type": "text", "dataField": "Name", "fontSize": 10, "fontWeight": "bold"},
					{"id": "price", "type": "text", "align": "right"},
				],
			},
			{"id": "logo", "type": "image", "src": "logo.png", "box": {"x": 0, "y": 0, "width": 0.5, "height": 0.5}},
		],
	}


#============================================
def test_designer_json_parses() -> None:
	"""
	Ensure designer keys and aliases map onto template fields.
	"""
	template = bls.template_io.template_from_dict(_designer_json())
	assert template.name == "Shelf tag"
	assert template.width == 2.625
	assert template.flow.justify == "center"
	assert template.flow.gap_px == 2.0
	# explicit zero is kept, not replaced by the default padding
	assert template.flow.padding_px == 0.0
	code, row, logo = template.elements
	assert code.symbology == "EAN13"
	assert code.size.width_percent == 90.0
	assert code.size.height_percent is None
	assert row.flow.direction == "row"
	assert row.flow.align == bls.template.GROUP_FLOW.align
	assert row.children[0].font_weight == "bold"
	assert logo.source == "logo.png"
	assert logo.box == bls.geometry.Box(x=0.0, y=0.0, width=0.5, height=0.5)
	bls.template.validate_template(template, ["SKU", "Name", "Price"])


#============================================
def test_save_and_load_file(tmp_path) -> None:
	"""
	Ensure a saved template loads back equal to the original.
	"""
	template = bls.template_io.template_from_dict(_designer_json())
	path = tmp_path / "shelf.json"
	bls.template_io.save_template(template, path)
	data = json.loads(path.read_text(encoding="utf-8"))
	assert data["layoutMode"] == "flow"
	assert data["elements"][0]["symbology"] == "EAN13"
	assert bls.template_io.load_template(path) == template


#============================================
def test_malformed_templates_rejected(tmp_path) -> None:
	"""
	Ensure missing sizes, bad numbers and unknown types are validation errors.
	"""
	with pytest.raises(bls.errors.ValidationError):
		bls.template_io.template_from_dict({"height": 1})
	with pytest.raises(bls.errors.ValidationError):
		bls.template_io.template_from_dict({"width": "wide", "height": 1})
	with pytest.raises(bls.errors.ValidationError):
		bls.template_io.element_from_dict({"id": "x", "type": "video"})
	path = tmp_path / "list.json"
	path.write_text("[]", encoding="utf-8")
	with pytest.raises(bls.errors.ValidationError):
		bls.template_io.load_template(path)
