"""
Batch export: render every generated label and write archives or PDFs.
"""

# Standard Library
import concurrent.futures
import io
import itertools
import json
import pathlib
import threading
import typing
import zipfile

# PIP3 modules
import PIL.Image
import pypdf
import reportlab.lib.utils
import reportlab.pdfgen.canvas

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.errors
import barcode_label_studio.geometry
import barcode_label_studio.packing
import barcode_label_studio.quantity
import barcode_label_studio.raster
import barcode_label_studio.template


LabelTemplate = bls.template.LabelTemplate
GeneratedLabel = bls.quantity.GeneratedLabel
QuantityPlan = bls.quantity.QuantityPlan
PackingGrid = bls.packing.PackingGrid
Page = bls.packing.Page
ArchiveConfig = bls.config.ArchiveConfig
PrintConfig = bls.config.PrintConfig
ExportResult = bls.config.ExportResult
ExportCancelled = bls.errors.ExportCancelled

ARCHIVE_NAMING_ROW_COPY = bls.config.ARCHIVE_NAMING_ROW_COPY
ARCHIVE_NAMING_SEQUENTIAL = bls.config.ARCHIVE_NAMING_SEQUENTIAL
ARCHIVE_NAMINGS = bls.config.ARCHIVE_NAMINGS
RENDER_CHUNK_SIZE = bls.config.RENDER_CHUNK_SIZE
PROGRESS_BAR_WIDTH = bls.config.PROGRESS_BAR_WIDTH
PROGRESS_UPDATE_EVERY = bls.config.PROGRESS_UPDATE_EVERY
OUTLINE_LINE_WIDTH = bls.config.OUTLINE_LINE_WIDTH
OUTLINE_GRAY = bls.config.OUTLINE_GRAY
PARTIAL_SUFFIX = bls.config.PARTIAL_SUFFIX
DOCUMENT_TITLE = bls.config.DOCUMENT_TITLE


class CancellationToken:
	"""
	Cooperative cancellation flag, checked once per label.
	"""

	def __init__(self) -> None:
		self._event = threading.Event()

	def cancel(self) -> None:
		self._event.set()

	@property
	def cancelled(self) -> bool:
		return self._event.is_set()

	def check(self) -> None:
		if self._event.is_set():
			raise ExportCancelled("export cancelled")


#============================================
def print_progress(prefix: str, current: int, total: int) -> None:
	"""
	Print a simple progress bar.

	Args:
		prefix: Label text.
		current: Current count.
		total: Total count.
	"""
	if total <= 0:
		return
	percent = int(round((current / total) * 100.0))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	print(f"{prefix} [{bar}] {current}/{total} ({percent}%)", end="\r")


def partial_path_for(output_path: pathlib.Path) -> pathlib.Path:
	return output_path.with_name(output_path.name + PARTIAL_SUFFIX)


#============================================
def render_generated(
	label: GeneratedLabel,
	dpi: float,
	image_cache: bls.raster.ImageCache,
	cancel_token: CancellationToken | None = None,
) -> PIL.Image.Image:
	"""
	Render one generated label.

	Args:
		label: Generated label with resolved values.
		dpi: Target DPI.
		image_cache: Loaded images by source.
		cancel_token: Checked before rendering.

	Returns:
		RGB surface.
	"""
	if cancel_token is not None:
		cancel_token.check()
	return bls.raster.render_label(
		label.template,
		None,
		dpi,
		image_cache=image_cache,
		values=dict(label.values),
	)


#============================================
def render_labels(
	labels: typing.Iterable[GeneratedLabel],
	dpi: float,
	workers: int = 1,
	image_cache: bls.raster.ImageCache | None = None,
	cancel_token: CancellationToken | None = None,
) -> typing.Iterator[tuple[PIL.Image.Image, GeneratedLabel]]:
	"""
	Render labels in parallel, yielding them in input order.

	Labels are taken in chunks so memory stays bounded for large plans.

	Args:
		labels: Generated labels in output order.
		dpi: Target DPI.
		workers: Worker thread count; 1 renders inline.
		image_cache: Loaded images by source.
		cancel_token: Checked once per label.

	Yields:
		Tuples of (surface, label).
	"""
	image_cache = image_cache or {}

	def render_one(label: GeneratedLabel) -> PIL.Image.Image:
		return render_generated(label, dpi, image_cache, cancel_token)

	iterator = iter(labels)
	if workers <= 1:
		for label in iterator:
			yield (render_one(label), label)
		return
	with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
		while True:
			chunk = list(itertools.islice(iterator, RENDER_CHUNK_SIZE))
			if not chunk:
				break
			# map keeps input order regardless of completion order
			for label, surface in zip(chunk, executor.map(render_one, chunk)):
				if cancel_token is not None:
					cancel_token.check()
				yield (surface, label)


#============================================
def archive_filename(label: GeneratedLabel, naming: str = ARCHIVE_NAMING_ROW_COPY) -> str:
	"""
	Deterministic file name of a label inside an archive.

	Args:
		label: Generated label.
		naming: "row_copy" or "sequential".

	Returns:
		File name like "label_3_1.png" or "label-7.png".
	"""
	if naming == ARCHIVE_NAMING_SEQUENTIAL:
		return f"label-{label.sequence_index}.png"
	return f"label_{label.row_index + 1}_{label.copy_index + 1}.png"


def resolve_workers(workers: int | None) -> int:
	return max(1, workers or 1)


#============================================
def prepare_export(
	template: LabelTemplate,
	rows: list[dict],
	plan: QuantityPlan,
	column_names: list[str] | None = None,
	skip_blank_barcode: bool = False,
	issues: list | None = None,
) -> typing.Iterator[GeneratedLabel]:
	"""
	Validate the template, then plan labels lazily.

	Args:
		template: Template snapshot.
		rows: Data rows.
		plan: Quantity plan.
		column_names: Known data columns; defaults to the first row's keys.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.
		issues: Optional list collecting binding warnings.

	Returns:
		Iterator of generated labels.

	Raises:
		ValidationError: Before any label is planned.
	"""
	if column_names is None and rows:
		column_names = list(rows[0].keys())
	bls.template.validate_template(template, column_names)
	return bls.quantity.plan_labels(
		template,
		rows,
		plan,
		skip_blank_barcode=skip_blank_barcode,
		issues=issues,
	)


#============================================
def export_archive(
	template: LabelTemplate,
	rows: list[dict],
	plan: QuantityPlan,
	config: ArchiveConfig,
	column_names: list[str] | None = None,
	cancel_token: CancellationToken | None = None,
	issues: list | None = None,
	skip_blank_barcode: bool = False,
	image_cache: bls.raster.ImageCache | None = None,
) -> typing.Iterator[tuple[str, PIL.Image.Image]]:
	"""
	Render every label as a named raster image.

	Validation happens on call; rendering happens as the result is read.

	Args:
		template: Template snapshot.
		rows: Data rows.
		plan: Quantity plan.
		config: Archive settings.
		column_names: Known data columns.
		cancel_token: Checked once per label.
		issues: Optional list collecting binding warnings.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.
		image_cache: Loaded images by source.

	Returns:
		Iterator of (filename, surface) in output order.
	"""
	if config.naming not in ARCHIVE_NAMINGS:
		raise bls.errors.ValidationError(f"unknown archive naming '{config.naming}'")
	labels = prepare_export(template, rows, plan, column_names, skip_blank_barcode, issues)
	if image_cache is None:
		image_cache = bls.raster.build_image_cache(template)
	rendered = render_labels(labels, config.dpi, resolve_workers(config.workers), image_cache, cancel_token)
	return ((archive_filename(label, config.naming), surface) for surface, label in rendered)


#============================================
def write_archive(
	output_path: pathlib.Path,
	entries: typing.Iterable[tuple[str, PIL.Image.Image]],
	dpi: int | None = None,
	total: int | None = None,
) -> int:
	"""
	Write named images into a zip archive.

	The archive is built under a ".partial" name and renamed when
	complete; on any error, cancellation included, it is removed.

	Args:
		output_path: Final archive path.
		entries: Pairs of (filename, surface).
		dpi: DPI stored in the PNG metadata.
		total: Expected count, enables the progress bar.

	Returns:
		Number of images written.
	"""
	partial_path = partial_path_for(output_path)
	count = 0
	try:
		with zipfile.ZipFile(partial_path, "w", zipfile.ZIP_DEFLATED) as archive:
			for name, surface in entries:
				buffer = io.BytesIO()
				if dpi:
					surface.save(buffer, format="PNG", dpi=(dpi, dpi))
				else:
					surface.save(buffer, format="PNG")
				archive.writestr(name, buffer.getvalue())
				count += 1
				if total and (count % PROGRESS_UPDATE_EVERY == 0 or count == total):
					print_progress("Labels", count, total)
		partial_path.replace(output_path)
	except BaseException:
		partial_path.unlink(missing_ok=True)
		raise
	if total:
		print()
	return count


#============================================
def export_print_document(
	template: LabelTemplate,
	rows: list[dict],
	plan: QuantityPlan,
	config: PrintConfig,
	column_names: list[str] | None = None,
	cancel_token: CancellationToken | None = None,
	issues: list | None = None,
	skip_blank_barcode: bool = False,
	image_cache: bls.raster.ImageCache | None = None,
) -> typing.Iterator[Page]:
	"""
	Render every label and pack the results onto pages.

	Validation and grid computation happen on call, so configuration
	errors surface before any label is rendered.

	Args:
		template: Template snapshot.
		rows: Data rows.
		plan: Quantity plan.
		config: Print settings.
		column_names: Known data columns.
		cancel_token: Checked once per label.
		issues: Optional list collecting binding warnings.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.
		image_cache: Loaded images by source.

	Returns:
		Iterator of pages in order.

	Raises:
		ValidationError: When the template is malformed.
		ExportConfigError: When no label fits on the page.
	"""
	labels = prepare_export(template, rows, plan, column_names, skip_blank_barcode, issues)
	grid = print_grid(template, config)
	if image_cache is None:
		image_cache = bls.raster.build_image_cache(template)
	rendered = render_labels(labels, config.dpi, resolve_workers(config.workers), image_cache, cancel_token)
	return bls.packing.pack(rendered, grid)


def print_grid(template: LabelTemplate, config: PrintConfig) -> PackingGrid:
	return bls.packing.grid_for_template(
		template.width,
		template.height,
		config.page_size,
		config.margin_inches,
		config.zero_waste,
	)


#============================================
def draw_grid_outlines(pdf: reportlab.pdfgen.canvas.Canvas, grid: PackingGrid) -> None:
	"""
	Draw cut outlines for every slot of a page.

	Args:
		pdf: ReportLab canvas sized to the page.
		grid: Page grid.
	"""
	page_height = bls.geometry.mm_to_points(grid.page_height)
	width = bls.geometry.mm_to_points(grid.label_width)
	height = bls.geometry.mm_to_points(grid.label_height)
	pdf.setLineWidth(OUTLINE_LINE_WIDTH)
	pdf.setStrokeColorRGB(OUTLINE_GRAY, OUTLINE_GRAY, OUTLINE_GRAY)
	for slot in range(grid.labels_per_page):
		x_mm, y_mm = grid.slot_position(slot)
		x = bls.geometry.mm_to_points(x_mm)
		y = page_height - bls.geometry.mm_to_points(y_mm) - height
		pdf.rect(x, y, width, height, stroke=1, fill=0)


#============================================
def build_outline_overlay(grid: PackingGrid) -> pypdf.PageObject:
	"""
	Build a PDF overlay page with label outlines.

	Args:
		grid: Page grid.

	Returns:
		PDF page object.
	"""
	buffer = io.BytesIO()
	page_size = (bls.geometry.mm_to_points(grid.page_width), bls.geometry.mm_to_points(grid.page_height))
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=page_size)
	draw_grid_outlines(pdf, grid)
	pdf.save()
	buffer.seek(0)
	reader = pypdf.PdfReader(buffer)
	return reader.pages[0]


#============================================
def render_pages_pdf(
	pages: typing.Iterable[Page],
	grid: PackingGrid,
	total: int | None = None,
) -> tuple[bytes, int]:
	"""
	Draw packed pages into PDF bytes.

	Args:
		pages: Packed pages.
		grid: Page grid.
		total: Expected label count, enables the progress bar.

	Returns:
		Tuple of (pdf bytes, page count).
	"""
	buffer = io.BytesIO()
	page_height = bls.geometry.mm_to_points(grid.page_height)
	page_size = (bls.geometry.mm_to_points(grid.page_width), page_height)
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=page_size)
	page_count = 0
	drawn = 0
	for page in pages:
		for placement in page.placements:
			width = bls.geometry.mm_to_points(placement.width)
			height = bls.geometry.mm_to_points(placement.height)
			x = bls.geometry.mm_to_points(placement.x)
			y = page_height - bls.geometry.mm_to_points(placement.y) - height
			pdf.drawImage(
				reportlab.lib.utils.ImageReader(placement.surface),
				x,
				y,
				width=width,
				height=height,
				mask=None,
				preserveAspectRatio=False,
				anchor="sw",
			)
			drawn += 1
			if total and (drawn % PROGRESS_UPDATE_EVERY == 0 or drawn == total):
				print_progress("Labels", drawn, total)
		pdf.showPage()
		page_count += 1
	if page_count == 0:
		return (b"", 0)
	pdf.save()
	return (buffer.getvalue(), page_count)


#============================================
def write_print_document(
	output_path: pathlib.Path,
	pages: typing.Iterable[Page],
	grid: PackingGrid,
	draw_outlines: bool = False,
	title: str = DOCUMENT_TITLE,
	total: int | None = None,
) -> int:
	"""
	Write packed pages to a PDF file.

	Pages are drawn with reportlab, then pypdf merges the optional cut
	outline overlay and stamps metadata. The file appears under its final
	name only when complete.

	Args:
		output_path: Final PDF path.
		pages: Packed pages.
		grid: Page grid.
		draw_outlines: Overlay label cut outlines.
		title: Document title metadata.
		total: Expected label count, enables the progress bar.

	Returns:
		Number of pages written.
	"""
	partial_path = partial_path_for(output_path)
	try:
		data, page_count = render_pages_pdf(pages, grid, total)
		writer = pypdf.PdfWriter()
		if page_count:
			reader = pypdf.PdfReader(io.BytesIO(data))
			outline_page = build_outline_overlay(grid) if draw_outlines else None
			for page in reader.pages:
				if outline_page is not None:
					page.merge_page(outline_page)
				writer.add_page(page)
		writer.add_metadata({"/Title": title, "/Producer": "barcode-label-studio"})
		with partial_path.open("wb") as handle:
			writer.write(handle)
		partial_path.replace(output_path)
	except BaseException:
		partial_path.unlink(missing_ok=True)
		raise
	if total:
		print()
	return page_count


#============================================
def export_archive_file(
	template: LabelTemplate,
	rows: list[dict],
	plan: QuantityPlan,
	config: ArchiveConfig,
	output_path: pathlib.Path,
	column_names: list[str] | None = None,
	cancel_token: CancellationToken | None = None,
	skip_blank_barcode: bool = False,
	verbose: bool = False,
) -> ExportResult:
	"""
	Export all labels to a zip archive of PNG files.

	Args:
		template: Template snapshot.
		rows: Data rows.
		plan: Quantity plan.
		config: Archive settings.
		output_path: Archive path.
		column_names: Known data columns.
		cancel_token: Checked once per label.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.
		verbose: Print a progress bar.

	Returns:
		ExportResult.
	"""
	issues: list = []
	entries = export_archive(
		template,
		rows,
		plan,
		config,
		column_names=column_names,
		cancel_token=cancel_token,
		issues=issues,
		skip_blank_barcode=skip_blank_barcode,
	)
	summary = bls.quantity.summarize_plan(template, rows, plan, skip_blank_barcode=skip_blank_barcode)
	total = summary["labels"] if verbose else None
	count = write_archive(output_path, entries, dpi=config.dpi, total=total)
	return ExportResult(
		total_labels=count,
		skipped_rows=summary["skipped_rows"],
		pages=0,
		labels_per_page=0,
		warnings=issues,
	)


#============================================
def export_print_file(
	template: LabelTemplate,
	rows: list[dict],
	plan: QuantityPlan,
	config: PrintConfig,
	output_path: pathlib.Path,
	column_names: list[str] | None = None,
	cancel_token: CancellationToken | None = None,
	skip_blank_barcode: bool = False,
	verbose: bool = False,
) -> ExportResult:
	"""
	Export all labels to a print-ready PDF.

	Args:
		template: Template snapshot.
		rows: Data rows.
		plan: Quantity plan.
		config: Print settings.
		output_path: PDF path.
		column_names: Known data columns.
		cancel_token: Checked once per label.
		skip_blank_barcode: Skip rows whose bound barcode cell is blank.
		verbose: Print a progress bar.

	Returns:
		ExportResult.
	"""
	issues: list = []
	pages = export_print_document(
		template,
		rows,
		plan,
		config,
		column_names=column_names,
		cancel_token=cancel_token,
		issues=issues,
		skip_blank_barcode=skip_blank_barcode,
	)
	grid = print_grid(template, config)
	summary = bls.quantity.summarize_plan(
		template,
		rows,
		plan,
		labels_per_page=grid.labels_per_page,
		skip_blank_barcode=skip_blank_barcode,
	)
	total = summary["labels"] if verbose else None
	page_count = write_print_document(
		output_path,
		pages,
		grid,
		draw_outlines=config.draw_outlines,
		title=template.name or DOCUMENT_TITLE,
		total=total,
	)
	return ExportResult(
		total_labels=summary["labels"],
		skipped_rows=summary["skipped_rows"],
		pages=page_count,
		labels_per_page=grid.labels_per_page,
		warnings=issues,
	)


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	inputs: dict[str, str],
	result: ExportResult,
	template: LabelTemplate,
	settings: dict,
	grid: PackingGrid | None = None,
) -> None:
	"""
	Write a manifest JSON file.

	Args:
		manifest_path: Output path.
		inputs: Input file paths by role.
		result: Export result.
		template: Template snapshot.
		settings: Export settings.
		grid: Page grid for print exports.
	"""
	data: dict[str, typing.Any] = {
		"inputs": inputs,
		"template": {
			"name": template.name,
			"width_inches": template.width,
			"height_inches": template.height,
			"layout_mode": template.layout_mode,
			"elements": sum(1 for _ in bls.template.iter_elements(template.elements)),
		},
		"settings": settings,
		"total_labels": result.total_labels,
		"skipped_rows": result.skipped_rows,
		"pages": result.pages,
		"labels_per_page": result.labels_per_page,
		"warnings": [str(warning) for warning in result.warnings],
	}
	if grid is not None:
		data["layout"] = {
			"page_width_mm": grid.page_width,
			"page_height_mm": grid.page_height,
			"label_width_mm": grid.label_width,
			"label_height_mm": grid.label_height,
			"columns": grid.columns,
			"rows": grid.rows,
			"origin_x_mm": grid.origin_x,
			"origin_y_mm": grid.origin_y,
			"h_spacing_mm": grid.h_spacing,
			"v_spacing_mm": grid.v_spacing,
		}
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)
