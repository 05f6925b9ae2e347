import pytest

import barcode_label_studio as bls
import barcode_label_studio.errors
import barcode_label_studio.geometry
import barcode_label_studio.template


Box = bls.geometry.Box
ValidationError = bls.errors.ValidationError
LabelTemplate = bls.template.LabelTemplate
TextElement = bls.template.TextElement
BarcodeElement = bls.template.BarcodeElement
GroupElement = bls.template.GroupElement


#============================================
def test_default_template_layout() -> None:
	"""
	Ensure the starter template is a barcode followed by one text per column.
	"""
	template = bls.template.build_default_template("SKU", ["Name", "Price"], size_name="3x1", symbology="CODE128")
	assert (template.width, template.height) == (3.0, 1.0)
	assert template.layout_mode == "flow"
	kinds = [element.kind for element in template.elements]
	assert kinds == ["barcode", "text", "text"]
	assert template.elements[0].symbology == "CODE128"
	assert template.elements[2].data_field == "Price"
	bls.template.validate_template(template, ["SKU", "Name", "Price"])
	no_barcode = bls.template.build_default_template(None, ["Name"])
	assert [element.id for element in no_barcode.elements] == ["element_1"]


#============================================
def test_label_size_presets() -> None:
	"""
	Ensure presets resolve and unknown names fall back to 2 x 1.
	"""
	assert bls.template.label_size_inches("4x2") == (4.0, 2.0)
	assert bls.template.label_size_inches("custom", (1.5, 0.75)) == (1.5, 0.75)
	assert bls.template.label_size_inches("huge") == (2.0, 1.0)


#============================================
def test_bound_field_and_literals() -> None:
	"""
	Ensure data fields win over the column mapping and shapes never bind.
	"""
	text = TextElement(id="t", data_field="Name")
	assert bls.template.bound_field(text, {"t": "Other"}) == "Name"
	assert bls.template.bound_field(TextElement(id="u"), {"u": "Other"}) == "Other"
	assert bls.template.bound_field(bls.template.ShapeElement(id="s"), {"s": "x"}) is None
	assert bls.template.has_literal(TextElement(id="v", content=""))
	assert not bls.template.has_literal(BarcodeElement(id="b"))


#============================================
def test_validation_collects_every_problem() -> None:
	"""
	Ensure malformed templates report each problem in one error.
	"""
	template = LabelTemplate(
		width=0.0,
		height=1.0,
		elements=(
			TextElement(id="a", content="x", data_field="Name"),
			TextElement(id="a"),
			BarcodeElement(id="b", data_field="Missing", symbology="QR"),
			bls.template.ShapeElement(id="s", shape="star"),
		),
		column_mapping={"ghost": "Name"},
	)
	with pytest.raises(ValidationError) as error:
		bls.template.validate_template(template, ["Name"])
	message = str(error.value)
	assert "canvas size must be positive" in message
	assert "a: text has both content and a bound column" in message
	assert "a: duplicate element id" in message
	assert "neither content nor a bound column" in message
	assert "unknown symbology 'QR'" in message
	assert "bound to missing column 'Missing'" in message
	assert "unknown shape 'star'" in message
	assert "unknown element 'ghost'" in message


#============================================
def test_validation_of_layout_settings() -> None:
	"""
	Ensure absolute layouts need boxes and flow keywords are checked.
	"""
	absolute = LabelTemplate(width=2.0, height=1.0, layout_mode="absolute", elements=(TextElement(id="t", content="x"),))
	with pytest.raises(ValidationError):
		bls.template.validate_template(absolute)
	grouped = LabelTemplate(
		width=2.0,
		height=1.0,
		layout_mode="absolute",
		elements=(GroupElement(id="g", children=(TextElement(id="t", content="x", box=Box(x=0, y=0, width=1, height=0.2)),)),),
	)
	bls.template.validate_template(grouped)
	bad_flow = LabelTemplate(
		width=2.0,
		height=1.0,
		flow=bls.template.FlowSettings(direction="diagonal", gap_px=-1.0),
	)
	with pytest.raises(ValidationError) as error:
		bls.template.validate_template(bad_flow)
	assert "unknown flex direction" in str(error.value)
	assert "gap_px is negative" in str(error.value)


#============================================
def test_validation_detects_group_cycles() -> None:
	"""
	Ensure a group that contains itself is rejected instead of recursing forever.
	"""
	group = GroupElement(id="g")
	# frozen dataclasses only allow this through object.__setattr__
	object.__setattr__(group, "children", (group,))
	template = LabelTemplate(width=2.0, height=1.0, elements=(group,))
	with pytest.raises(ValidationError) as error:
		bls.template.validate_template(template)
	assert "cycle" in str(error.value)


#============================================
def test_iter_and_find_elements() -> None:
	"""
	Ensure walking visits groups before children in paint order.
	"""
	template = LabelTemplate(
		width=2.0,
		height=1.0,
		elements=(
			GroupElement(id="g", children=(TextElement(id="t1", content="a"), TextElement(id="t2", content="b"))),
			TextElement(id="t3", content="c"),
		),
	)
	ids = [element.id for element in bls.template.iter_elements(template.elements)]
	assert ids == ["g", "t1", "t2", "t3"]
	assert bls.template.find_element(template, "t2").content == "b"
	assert bls.template.find_element(template, "zzz") is None
