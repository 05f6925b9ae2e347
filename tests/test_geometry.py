import pytest

import barcode_label_studio as bls
import barcode_label_studio.geometry


Box = bls.geometry.Box


#============================================
def test_unit_conversions() -> None:
	"""
	Ensure inch, pixel, millimeter and point conversions agree.
	"""
	assert bls.geometry.inches_to_pixels(2.0, 300) == 600
	assert bls.geometry.inches_to_pixels(1.0 / 3.0, 96) == 32
	assert bls.geometry.pixels_to_inches(150, 300) == pytest.approx(0.5)
	assert bls.geometry.mm_from_inches(2.0) == pytest.approx(50.8)
	assert bls.geometry.inches_from_mm(25.4) == pytest.approx(1.0)
	assert bls.geometry.mm_to_points(25.4) == pytest.approx(72.0)
	assert bls.geometry.css_to_inches(96) == pytest.approx(1.0)


#============================================
def test_round_half_up() -> None:
	"""
	Ensure halves always round up so both DPIs round the same way.
	"""
	assert bls.geometry.round_half_up(0.5) == 1
	assert bls.geometry.round_half_up(1.5) == 2
	assert bls.geometry.round_half_up(2.5) == 3
	assert bls.geometry.round_half_up(2.49) == 2


#============================================
def test_box_to_pixels_keeps_adjacent_boxes_adjacent() -> None:
	"""
	Ensure edge rounding leaves no gap between touching boxes.
	"""
	left = Box(x=0.0, y=0.0, width=1.0 / 3.0, height=0.5)
	right = Box(x=1.0 / 3.0, y=0.0, width=1.0 / 3.0, height=0.5)
	for dpi in (96, 300, 203):
		left_px = bls.geometry.box_to_pixels(left, dpi)
		right_px = bls.geometry.box_to_pixels(right, dpi)
		assert left_px.x + left_px.width == right_px.x


#============================================
def test_clamp_box_keeps_box_inside_container() -> None:
	"""
	Ensure clamping keeps position within [0, container - size].
	"""
	clamped = bls.geometry.clamp_box(Box(x=1.8, y=-0.2, width=0.5, height=0.3), 2.0, 1.0)
	assert clamped == Box(x=1.5, y=0.0, width=0.5, height=0.3)
	oversized = bls.geometry.clamp_box(Box(x=0.5, y=0.5, width=3.0, height=2.0), 2.0, 1.0)
	assert oversized == Box(x=0.0, y=0.0, width=2.0, height=1.0)


#============================================
def test_union_and_hit_testing() -> None:
	"""
	Ensure union boxes and point tests use canvas coordinates.
	"""
	boxes = [Box(x=0.1, y=0.1, width=0.2, height=0.2), Box(x=0.5, y=0.4, width=0.3, height=0.1)]
	union = bls.geometry.union_boxes(boxes)
	assert union.x == pytest.approx(0.1)
	assert union.right == pytest.approx(0.8)
	assert union.bottom == pytest.approx(0.5)
	assert bls.geometry.union_boxes([]) is None
	assert bls.geometry.point_in_box(0.2, 0.2, boxes[0])
	assert not bls.geometry.point_in_box(0.4, 0.2, boxes[0])
	assert bls.geometry.boxes_intersect(boxes[0], union)
	assert not bls.geometry.boxes_intersect(boxes[0], boxes[1])


#============================================
def test_snap_and_align_offsets() -> None:
	"""
	Ensure grid snapping and alignment offsets match their keywords.
	"""
	assert bls.geometry.snap_to_grid(14.0) == 10.0
	assert bls.geometry.snap_to_grid(15.0) == 20.0
	assert bls.geometry.snap_to_grid(7.0, 0) == 7.0
	assert bls.geometry.compute_align_offset(10.0, 4.0, "flex-start") == 0.0
	assert bls.geometry.compute_align_offset(10.0, 4.0, "center") == 3.0
	assert bls.geometry.compute_align_offset(10.0, 4.0, "flex-end") == 6.0
	assert bls.geometry.compute_align_offset(4.0, 10.0, "flex-end") == 0.0
