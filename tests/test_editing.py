import pytest

import barcode_label_studio as bls
import barcode_label_studio.editing
import barcode_label_studio.errors
import barcode_label_studio.geometry
import barcode_label_studio.layout
import barcode_label_studio.template


Box = bls.geometry.Box
ValidationError = bls.errors.ValidationError


#============================================
def _absolute_template() -> bls.template.LabelTemplate:
	"""
	Two inch canvas with a text, a shape and a group holding a barcode.

	Returns:
		LabelTemplate in absolute mode.
	"""
	return bls.template.LabelTemplate(
		width=2.0,
		height=1.0,
		layout_mode="absolute",
		elements=(
			bls.template.TextElement(id="t", content="Hello", box=Box(x=0.1, y=0.1, width=0.5, height=0.2)),
			bls.template.ShapeElement(id="s", box=Box(x=1.0, y=0.5, width=0.5, height=0.3)),
			bls.template.GroupElement(
				id="g",
				children=(
					bls.template.BarcodeElement(id="b", data_field="SKU", box=Box(x=0.2, y=0.5, width=0.6, height=0.4)),
				),
			),
		),
		column_mapping={"b": "SKU"},
	)


#============================================
def _ids(elements) -> list[str]:
	return [element.id for element in elements]


#============================================
def test_move_clamps_inside_canvas() -> None:
	"""
	Ensure moves past the edge stop at the canvas and leave the original alone.
	"""
	template = _absolute_template()
	moved = bls.editing.move_element(template, "t", 5.0, -1.0)
	box = bls.template.find_element(moved, "t").box
	assert box.x == pytest.approx(1.5)
	assert box.y == pytest.approx(0.0)
	assert bls.template.find_element(template, "t").box.x == pytest.approx(0.1)


#============================================
def test_resize_keeps_opposite_corner() -> None:
	"""
	Ensure a handle drag keeps the opposite corner and the minimum size.
	"""
	template = _absolute_template()
	shrunk = bls.editing.resize_element(template, "t", "se", -1.0, -1.0)
	box = bls.template.find_element(shrunk, "t").box
	assert (box.x, box.y) == (pytest.approx(0.1), pytest.approx(0.1))
	assert box.width == pytest.approx(0.1)
	assert box.height == pytest.approx(0.1)

	dragged = bls.editing.resize_element(template, "t", "nw", 0.2, 0.05)
	box = bls.template.find_element(dragged, "t").box
	assert box.x == pytest.approx(0.3)
	assert box.y == pytest.approx(0.15)
	assert box.right == pytest.approx(0.6)
	assert box.bottom == pytest.approx(0.3)

	with pytest.raises(ValueError):
		bls.editing.resize_element(template, "t", "north", 0.1, 0.1)
	with pytest.raises(KeyError):
		bls.editing.resize_element(template, "nope", "se", 0.1, 0.1)


#============================================
def _group_frames(template) -> dict:
	"""
	Resolve a two-shape group and return frames by element id.

	Returns:
		Frames in inches.
	"""
	layout = bls.layout.resolve_layout(template, 96)
	return {node.element_id: node.frame for node in layout.iter_nodes()}


def _shape_group_template() -> bls.template.LabelTemplate:
	return bls.template.LabelTemplate(
		width=2.0,
		height=1.0,
		layout_mode="absolute",
		elements=(
			bls.template.GroupElement(
				id="g",
				children=(
					bls.template.ShapeElement(id="a", box=Box(x=0.1, y=0.1, width=0.2, height=0.2)),
					bls.template.ShapeElement(id="b", box=Box(x=0.5, y=0.1, width=0.3, height=0.3)),
				),
			),
		),
	)


#============================================
def test_moving_group_moves_children() -> None:
	"""
	Ensure dragging a group translates every child with it.
	"""
	template = _shape_group_template()
	moved = bls.editing.move_element(template, "g", 0.5, 0.3)
	frames = _group_frames(moved)
	assert frames["a"].x == pytest.approx(0.6)
	assert frames["a"].y == pytest.approx(0.4)
	assert frames["b"].x == pytest.approx(1.0)
	assert frames["b"].width == pytest.approx(0.3)
	# the group frame still wraps its children
	assert frames["g"].x == pytest.approx(0.6)
	assert frames["g"].y == pytest.approx(0.4)
	assert frames["g"].right == pytest.approx(1.3)
	assert frames["g"].bottom == pytest.approx(0.7)
	# clamped as one unit: the children keep their spacing
	pushed = _group_frames(bls.editing.move_element(template, "g", 5.0, 0.0))
	assert pushed["g"].right == pytest.approx(2.0)
	assert pushed["b"].x - pushed["a"].x == pytest.approx(0.4)


#============================================
def test_resizing_group_scales_children() -> None:
	"""
	Ensure a corner drag scales the children from the fixed corner.
	"""
	template = _shape_group_template()
	resized = bls.editing.resize_element(template, "g", "se", 0.7, 0.3)
	frames = _group_frames(resized)
	assert (frames["a"].x, frames["a"].y) == (pytest.approx(0.1), pytest.approx(0.1))
	assert (frames["a"].width, frames["a"].height) == (pytest.approx(0.4), pytest.approx(0.4))
	assert frames["b"].x == pytest.approx(0.9)
	assert frames["b"].width == pytest.approx(0.6)
	assert frames["b"].bottom == pytest.approx(0.7)
	assert frames["g"].right == pytest.approx(1.5)
	assert frames["g"].bottom == pytest.approx(0.7)


#============================================
def test_add_and_remove_elements() -> None:
	"""
	Ensure adding rejects duplicate ids and removing drops the subtree and mapping.
	"""
	template = _absolute_template()
	added = bls.editing.add_element(template, bls.template.ShapeElement(id="dot"), parent_id="g")
	assert _ids(bls.template.find_element(added, "g").children) == ["b", "dot"]
	with pytest.raises(ValidationError):
		bls.editing.add_element(template, bls.template.ShapeElement(id="s"))
	with pytest.raises(ValidationError):
		bls.editing.add_element(template, bls.template.ShapeElement(id="x"), parent_id="t")

	removed = bls.editing.remove_element(template, "g")
	assert _ids(removed.elements) == ["t", "s"]
	assert bls.template.find_element(removed, "b") is None
	assert removed.column_mapping == {}
	assert template.column_mapping == {"b": "SKU"}


#============================================
def test_group_and_ungroup_siblings() -> None:
	"""
	Ensure grouping keeps sibling order and ungrouping restores it.
	"""
	template = _absolute_template()
	grouped = bls.editing.group_elements(template, ["s", "t"], "pair")
	assert _ids(grouped.elements) == ["pair", "g"]
	assert _ids(grouped.elements[0].children) == ["t", "s"]
	bls.template.validate_template(grouped)

	restored = bls.editing.ungroup_element(grouped, "pair")
	assert _ids(restored.elements) == ["t", "s", "g"]

	with pytest.raises(ValidationError):
		bls.editing.group_elements(template, ["t", "b"], "mixed")
	with pytest.raises(ValidationError):
		bls.editing.group_elements(template, ["t"], "s")
	with pytest.raises(ValidationError):
		bls.editing.ungroup_element(template, "t")


#============================================
def test_move_to_group_rejects_cycles() -> None:
	"""
	Ensure elements can move between groups but never into themselves.
	"""
	template = _absolute_template()
	moved = bls.editing.move_to_group(template, "t", "g")
	assert _ids(moved.elements) == ["s", "g"]
	assert _ids(moved.elements[1].children) == ["b", "t"]
	back = bls.editing.move_to_group(moved, "t", None)
	assert _ids(back.elements) == ["s", "g", "t"]

	nested = bls.editing.add_element(template, bls.template.GroupElement(id="inner"), parent_id="g")
	with pytest.raises(ValidationError):
		bls.editing.move_to_group(nested, "g", "inner")
	with pytest.raises(ValidationError):
		bls.editing.move_to_group(nested, "g", "g")


#============================================
def test_rebind_text_and_barcode() -> None:
	"""
	Ensure rebinding switches between column data and literals.
	"""
	template = _absolute_template()
	bound = bls.editing.rebind_element(template, "t", "Name")
	text = bls.template.find_element(bound, "t")
	assert text.data_field == "Name"
	assert text.content is None

	unbound = bls.editing.rebind_element(bound, "t", None)
	assert bls.template.find_element(unbound, "t").content == "Sample Text"

	barcode = bls.editing.rebind_element(template, "b", None)
	assert bls.template.find_element(barcode, "b").data_field is None
	assert "b" not in barcode.column_mapping

	with pytest.raises(ValidationError):
		bls.editing.rebind_element(template, "s", "Name")


#============================================
def test_switch_to_absolute_bakes_flow_positions() -> None:
	"""
	Ensure switching modes keeps every element where it was drawn.
	"""
	template = bls.template.build_default_template("SKU", ["Name"])
	before = {node.element_id: node.frame for node in bls.layout.resolve_layout(template, 96).iter_nodes()}
	absolute = bls.editing.set_layout_mode(template, "absolute")
	assert absolute.layout_mode == "absolute"
	after = {node.element_id: node.frame for node in bls.layout.resolve_layout(absolute, 96).iter_nodes()}
	assert after == before
	assert bls.editing.set_layout_mode(absolute, "absolute") is absolute
	with pytest.raises(ValidationError):
		bls.editing.set_layout_mode(template, "grid")


#============================================
def test_element_at_point_returns_topmost_leaf() -> None:
	"""
	Ensure hit testing finds leaves, not groups, and misses empty space.
	"""
	template = _absolute_template()
	assert bls.editing.element_at_point(template, 0.2, 0.15) == "t"
	assert bls.editing.element_at_point(template, 0.5, 0.7) == "b"
	assert bls.editing.element_at_point(template, 1.9, 0.05) is None
	stacked = bls.editing.add_element(
		template,
		bls.template.ShapeElement(id="cover", box=Box(x=0.0, y=0.0, width=1.0, height=0.5)),
	)
	assert bls.editing.element_at_point(stacked, 0.2, 0.15) == "cover"
