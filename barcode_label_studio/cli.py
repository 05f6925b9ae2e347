"""
CLI entry points for batch label generation.
"""

# Standard Library
import argparse
import pathlib
import time

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.errors
import barcode_label_studio.export
import barcode_label_studio.quantity
import barcode_label_studio.raster
import barcode_label_studio.template
import barcode_label_studio.template_io


ArchiveConfig = bls.config.ArchiveConfig
PrintConfig = bls.config.PrintConfig
QuantityPlan = bls.quantity.QuantityPlan
LabelStudioError = bls.errors.LabelStudioError

PRINT_DPI = bls.config.PRINT_DPI
DEFAULT_PAGE_SIZE = bls.config.DEFAULT_PAGE_SIZE
DEFAULT_MARGIN_INCHES = bls.config.DEFAULT_MARGIN_INCHES
DEFAULT_WORKERS = bls.config.DEFAULT_WORKERS
DEFAULT_LABEL_SIZE = bls.config.DEFAULT_LABEL_SIZE
DEFAULT_SYMBOLOGY = bls.config.DEFAULT_SYMBOLOGY
DEFAULT_QUANTITY = bls.config.DEFAULT_QUANTITY
ARCHIVE_NAMING_ROW_COPY = bls.config.ARCHIVE_NAMING_ROW_COPY
ARCHIVE_NAMINGS = bls.config.ARCHIVE_NAMINGS
PAGE_SIZES_MM = bls.config.PAGE_SIZES_MM
LABEL_SIZES = bls.config.LABEL_SIZES


#============================================
def build_archive_config(args: argparse.Namespace) -> ArchiveConfig:
	"""
	Build archive config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		ArchiveConfig.
	"""
	return ArchiveConfig(
		dpi=args.dpi,
		naming=args.naming,
		workers=args.workers,
	)


#============================================
def build_print_config(args: argparse.Namespace) -> PrintConfig:
	"""
	Build print config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		PrintConfig.
	"""
	return PrintConfig(
		page_size=args.page_size,
		margin_inches=args.margin,
		zero_waste=args.zero_waste,
		dpi=args.dpi,
		draw_outlines=args.draw_outlines,
		workers=args.workers,
	)


#============================================
def build_quantity_plan(args: argparse.Namespace) -> QuantityPlan:
	"""
	Build the quantity plan from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		QuantityPlan.
	"""
	if args.quantity_column:
		return QuantityPlan(policy="column", column=args.quantity_column)
	if args.manual_quantities:
		manual = bls.quantity.load_manual_quantities(pathlib.Path(args.manual_quantities))
		return QuantityPlan(policy="manual", manual=manual)
	return QuantityPlan(policy="fixed", fixed_quantity=args.fixed_quantity)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Render barcode labels from a data file into a PDF or a PNG archive.")
	parser.add_argument("data", help="CSV or JSON data file.")

	template_group = parser.add_argument_group("Template")
	template_group.add_argument("-t", "--template", dest="template_path", default=None, help="Template JSON path.")
	template_group.add_argument("-b", "--barcode-column", dest="barcode_column", default=None, help="Barcode column for the starter template.")
	template_group.add_argument("-T", "--text-column", dest="text_columns", action="append", default=[], help="Text column for the starter template (repeatable).")
	template_group.add_argument("-S", "--label-size", dest="label_size", choices=sorted(LABEL_SIZES), default=DEFAULT_LABEL_SIZE, help="Label size preset for the starter template.")
	template_group.add_argument("-y", "--symbology", dest="symbology", default=DEFAULT_SYMBOLOGY, help="Barcode symbology for the starter template.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", required=True, help="Output PDF or ZIP path.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")
	output_group.add_argument("--preview", dest="preview_path", default=None, help="Write a screen preview PNG of the first row.")
	format_group = output_group.add_mutually_exclusive_group()
	format_group.add_argument("-z", "--zip", dest="output_format", action="store_const", const="zip", help="Write a ZIP of PNG labels.")
	format_group.add_argument("-f", "--pdf", dest="output_format", action="store_const", const="pdf", help="Write a print-ready PDF.")
	output_group.add_argument("-n", "--naming", dest="naming", choices=ARCHIVE_NAMINGS, default=ARCHIVE_NAMING_ROW_COPY, help="Archive file naming.")

	quantity_group = parser.add_argument_group("Quantity")
	quantity_source = quantity_group.add_mutually_exclusive_group()
	quantity_source.add_argument("-q", "--quantity-column", dest="quantity_column", default=None, help="Column holding copy counts.")
	quantity_source.add_argument("-x", "--fixed-quantity", dest="fixed_quantity", type=int, default=DEFAULT_QUANTITY, help="Copies of every row.")
	quantity_source.add_argument("-M", "--manual-quantities", dest="manual_quantities", default=None, help="JSON map of row number to copies.")
	quantity_group.add_argument("-k", "--skip-blank-barcode", dest="skip_blank_barcode", action="store_true", help="Skip rows with a blank barcode cell.")

	print_group = parser.add_argument_group("Print")
	print_group.add_argument("-s", "--page-size", dest="page_size", choices=sorted(PAGE_SIZES_MM), default=DEFAULT_PAGE_SIZE, help="Paper size.")
	print_group.add_argument("-g", "--margin", dest="margin", type=float, default=DEFAULT_MARGIN_INCHES, help="Page margin in inches.")
	print_group.add_argument("-w", "--zero-waste", dest="zero_waste", action="store_true", help="Spread leftover space between labels.")
	print_group.add_argument("-W", "--no-zero-waste", dest="zero_waste", action="store_false", help="Keep leftover space at the page edges.")
	print_group.add_argument("-d", "--draw-outlines", dest="draw_outlines", action="store_true", help="Draw label cut outlines.")
	print_group.add_argument("-D", "--no-draw-outlines", dest="draw_outlines", action="store_false", help="Disable label cut outlines.")

	render_group = parser.add_argument_group("Rendering")
	render_group.add_argument("-r", "--dpi", dest="dpi", type=int, default=PRINT_DPI, help="Render DPI.")
	render_group.add_argument("-j", "--workers", dest="workers", type=int, default=DEFAULT_WORKERS, help="Render worker threads.")

	parser.set_defaults(
		output_format=None,
		zero_waste=False,
		draw_outlines=False,
		skip_blank_barcode=False,
	)

	args = parser.parse_args(argv)
	if args.output_format is None:
		suffix = pathlib.Path(args.output_path).suffix.lower()
		args.output_format = "zip" if suffix == ".zip" else "pdf"
	if args.template_path is None and not args.barcode_column and not args.text_columns:
		parser.error("give --template or at least one of --barcode-column / --text-column")
	return args


#============================================
def load_or_build_template(args: argparse.Namespace) -> bls.template.LabelTemplate:
	"""
	Load the template file, or build the starter template.

	Args:
		args: Parsed argparse namespace.

	Returns:
		LabelTemplate.
	"""
	if args.template_path:
		return bls.template_io.load_template(pathlib.Path(args.template_path))
	return bls.template.build_default_template(
		args.barcode_column,
		args.text_columns,
		size_name=args.label_size,
		symbology=args.symbology,
	)


#============================================
def run_pipeline(args: argparse.Namespace) -> bls.config.ExportResult:
	"""
	Run the full pipeline from data file to output file.

	Args:
		args: Parsed argparse namespace.

	Returns:
		ExportResult.
	"""
	print("Barcode label generation")
	print(f"Data: {args.data}")
	print(f"Template: {args.template_path or 'starter template'}")
	print(f"Output ({args.output_format}): {args.output_path}")
	print(f"DPI: {args.dpi}")
	print(f"Workers: {args.workers}")
	if args.output_format == "pdf":
		print(f"Page size: {args.page_size}")
		print(f"Margin: {args.margin} in")
		print(f"Zero waste: {args.zero_waste}")
		print(f"Draw outlines: {args.draw_outlines}")
	else:
		print(f"Naming: {args.naming}")

	start_time = time.perf_counter()
	template = load_or_build_template(args)
	rows, column_names = bls.quantity.load_rows(pathlib.Path(args.data))
	plan = build_quantity_plan(args)
	bls.template.validate_template(template, column_names)
	load_end = time.perf_counter()
	print(f"Rows loaded: {len(rows)}")
	print(f"Columns: {', '.join(column_names)}")
	print(f"Quantity policy: {plan.policy}")

	if args.preview_path:
		first_row = rows[0] if rows else None
		preview = bls.raster.render_preview(template, first_row, bls.raster.build_image_cache(template))
		preview.save(args.preview_path)
		print(f"Preview written: {args.preview_path}")

	output_path = pathlib.Path(args.output_path)
	output_path.parent.mkdir(parents=True, exist_ok=True)
	render_start = time.perf_counter()
	grid = None
	if args.output_format == "zip":
		config = build_archive_config(args)
		result = bls.export.export_archive_file(
			template,
			rows,
			plan,
			config,
			output_path,
			column_names=column_names,
			skip_blank_barcode=args.skip_blank_barcode,
			verbose=True,
		)
		settings = {"format": "zip", "dpi": config.dpi, "naming": config.naming}
	else:
		config = build_print_config(args)
		result = bls.export.export_print_file(
			template,
			rows,
			plan,
			config,
			output_path,
			column_names=column_names,
			skip_blank_barcode=args.skip_blank_barcode,
			verbose=True,
		)
		grid = bls.export.print_grid(template, config)
		settings = {
			"format": "pdf",
			"dpi": config.dpi,
			"page_size": config.page_size,
			"margin_inches": config.margin_inches,
			"zero_waste": config.zero_waste,
			"draw_outlines": config.draw_outlines,
		}
	render_end = time.perf_counter()

	print(f"Labels written: {result.total_labels}")
	print(f"Rows skipped: {result.skipped_rows}")
	if grid is not None:
		print(f"Labels per page: {result.labels_per_page} ({grid.columns} x {grid.rows})")
		print(f"Pages written: {result.pages}")
	for warning in result.warnings:
		print(f"Data warning: {warning}")
	if result.warnings:
		print(f"Data warning summary: {len(result.warnings)} issues")

	manifest_path = args.manifest_path
	if manifest_path is None:
		manifest_path = f"{output_path}.json"
	inputs = {"data": str(args.data)}
	if args.template_path:
		inputs["template"] = str(args.template_path)
	bls.export.write_manifest(pathlib.Path(manifest_path), inputs, result, template, settings, grid)

	total_time = time.perf_counter() - start_time
	print(
		"Timing: load={:.2f}s render={:.2f}s total={:.2f}s".format(
			load_end - start_time,
			render_end - render_start,
			total_time,
		)
	)
	print(f"Manifest written: {manifest_path}")
	return result


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Main entry point.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Process exit code.
	"""
	args = parse_args(argv)
	try:
		run_pipeline(args)
	except LabelStudioError as error:
		print(f"Error: {error}")
		return 1
	return 0
