import PIL.Image
import pytest

import barcode_label_studio as bls
import barcode_label_studio.errors
import barcode_label_studio.packing


#============================================
def test_letter_sheet_fits_thirty_2x1_labels() -> None:
	"""
	Ensure 2 x 1 inch labels on letter with half-inch margins give 3 x 10.
	"""
	grid = bls.packing.grid_for_template(2.0, 1.0, "letter", 0.5, False)
	assert grid.columns == 3
	assert grid.rows == 10
	assert grid.labels_per_page == 30
	assert grid.origin_x == pytest.approx(12.7)
	assert grid.origin_y == pytest.approx(12.7)
	assert grid.h_spacing == 0.0
	assert bls.packing.page_count(31, grid) == 2
	assert bls.packing.page_count(30, grid) == 1
	assert bls.packing.page_count(0, grid) == 0


#============================================
def test_slots_stay_inside_printable_area() -> None:
	"""
	Ensure every slot lies inside the margins, with and without zero-waste.
	"""
	for zero_waste in (False, True):
		grid = bls.packing.grid_for_template(2.625, 1.0, "a4", 0.25, zero_waste)
		margin = 0.25 * 25.4
		for slot in range(grid.labels_per_page):
			x, y = grid.slot_position(slot)
			assert x >= margin - 1e-6
			assert y >= margin - 1e-6
			assert x + grid.label_width <= grid.page_width - margin + 1e-6
			assert y + grid.label_height <= grid.page_height - margin + 1e-6


#============================================
def test_zero_waste_spreads_leftover() -> None:
	"""
	Ensure zero-waste turns leftover space into equal gaps.
	"""
	grid = bls.packing.compute_grid(100.0, 30.0, 30.0, 30.0, 0.0, zero_waste=True)
	assert grid.columns == 3
	assert grid.h_spacing == pytest.approx(5.0)
	assert grid.slot_position(2) == (pytest.approx(70.0), pytest.approx(0.0))
	single = bls.packing.compute_grid(100.0, 50.0, 60.0, 50.0, 0.0, zero_waste=True)
	assert single.columns == 1
	assert single.origin_x == pytest.approx(20.0)


#============================================
def test_exact_fit_absorbs_float_noise() -> None:
	"""
	Ensure a page that holds labels exactly is not shorted by rounding.
	"""
	grid = bls.packing.compute_grid(7.5, 7.5, 2.5, 2.5)
	assert grid.columns == 3
	assert grid.rows == 3


#============================================
def test_oversize_label_and_bad_page_rejected() -> None:
	"""
	Ensure impossible layouts raise configuration errors.
	"""
	with pytest.raises(bls.errors.ExportConfigError):
		bls.packing.grid_for_template(9.0, 1.0, "letter", 0.5, False)
	with pytest.raises(bls.errors.ExportConfigError):
		bls.packing.compute_grid(100.0, 100.0, 0.0, 10.0)
	with pytest.raises(bls.errors.ExportConfigError):
		bls.packing.compute_grid(100.0, 100.0, 10.0, 10.0, margin=-1.0)
	with pytest.raises(bls.errors.ExportConfigError):
		bls.packing.page_size_mm("tabloid")
	assert bls.packing.page_size_mm(" A4 ") == (210.0, 297.0)


#============================================
def test_pack_fills_pages_in_order() -> None:
	"""
	Ensure pages fill row-major and only the last page may be partial.
	"""
	grid = bls.packing.compute_grid(100.0, 50.0, 50.0, 25.0)
	surface = PIL.Image.new("RGB", (10, 5), "white")
	items = [(surface, index) for index in range(9)]
	pages = list(bls.packing.pack(items, grid))
	assert [len(page.placements) for page in pages] == [4, 4, 1]
	assert [page.index for page in pages] == [0, 1, 2]
	labels = [placement.label for page in pages for placement in page.placements]
	assert labels == list(range(9))
	second = pages[0].placements[1]
	assert (second.x, second.y) == (pytest.approx(50.0), pytest.approx(0.0))
	third = pages[0].placements[2]
	assert (third.x, third.y) == (pytest.approx(0.0), pytest.approx(25.0))
	assert list(bls.packing.pack([], grid)) == []
