import pathlib

import fitz
import PIL.Image

import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.export
import barcode_label_studio.quantity
import barcode_label_studio.template


DPI = 100
INK_THRESHOLD = 240
EDGE_RATIO_LIMIT = 0.01
INTERIOR_RATIO_MIN = 0.02


#============================================
def _render_pdf_first_page(path: pathlib.Path) -> PIL.Image.Image:
	"""
	Render the first page of a PDF to an image.

	Args:
		path: PDF path.

	Returns:
		PIL image.
	"""
	document = fitz.open(path)
	page = document[0]
	scale = DPI / 72.0
	matrix = fitz.Matrix(scale, scale)
	pixmap = page.get_pixmap(matrix=matrix, alpha=False)
	image = PIL.Image.frombytes("RGB", [pixmap.width, pixmap.height], pixmap.samples)
	document.close()
	return image


#============================================
def _count_ink_ratio(gray: PIL.Image.Image, threshold: int) -> float:
	"""
	Compute the ink ratio for a grayscale strip.

	Args:
		gray: Grayscale image region.
		threshold: Pixel intensity threshold.

	Returns:
		Ink ratio.
	"""
	pixels = list(gray.getdata())
	if not pixels:
		return 0.0
	ink = sum(1 for value in pixels if value < threshold)
	return ink / len(pixels)


#============================================
def test_rendered_page_edge_strips(items_csv, tmp_path: pathlib.Path) -> None:
	"""
	Smoke test the first page: every used slot has ink, edges stay clean.
	"""
	rows, column_names = bls.quantity.load_rows(items_csv)
	template = bls.template.build_default_template("SKU", ["Name"], size_name="2x1")
	config = bls.config.PrintConfig(
		page_size="letter",
		margin_inches=0.5,
		zero_waste=True,
		dpi=150,
		draw_outlines=False,
		workers=2,
	)
	output_pdf = tmp_path / "smoke.pdf"
	result = bls.export.export_print_file(
		template,
		rows,
		bls.quantity.QuantityPlan(policy="column", column="Qty"),
		config,
		output_pdf,
		column_names=column_names,
	)
	assert result.pages == 1

	image = _render_pdf_first_page(output_pdf)
	gray = image.convert("L")
	grid = bls.export.print_grid(template, config)
	scale = DPI / 25.4
	strip = 2

	violations = []
	for slot in range(grid.labels_per_page):
		x_mm, y_mm = grid.slot_position(slot)
		x0 = int(round(x_mm * scale))
		y0 = int(round(y_mm * scale))
		x1 = int(round((x_mm + grid.label_width) * scale))
		y1 = int(round((y_mm + grid.label_height) * scale))
		if x1 <= x0 or y1 <= y0:
			continue
		interior = _count_ink_ratio(gray.crop((x0 + strip, y0 + strip, x1 - strip, y1 - strip)), INK_THRESHOLD)
		if slot < result.total_labels:
			if interior < INTERIOR_RATIO_MIN:
				violations.append(f"slot {slot} has no ink ({interior:.3f})")
		elif interior > 0.0:
			violations.append(f"slot {slot} should be empty ({interior:.3f})")
		for edge_name, edge in (
			("left", gray.crop((x0, y0, x0 + strip, y1))),
			("right", gray.crop((x1 - strip, y0, x1, y1))),
			("top", gray.crop((x0, y0, x1, y0 + strip))),
			("bottom", gray.crop((x0, y1 - strip, x1, y1))),
		):
			ratio = _count_ink_ratio(edge, INK_THRESHOLD)
			if ratio > EDGE_RATIO_LIMIT:
				violations.append(f"slot {slot} edge {edge_name} ratio {ratio:.3f}")

	if violations:
		message = "Unexpected ink in rendered page:\n"
		message += "\n".join(violations[:10])
		raise AssertionError(message)
