"""
Shared configuration and constants.
"""

import dataclasses


CSS_DPI = 96
DISPLAY_DPI = 96
PRINT_DPI = 300
POINTS_PER_INCH = 72.0
MM_PER_INCH = 25.4

LABEL_SIZES = {
	"2x1": (2.0, 1.0),
	"3x1": (3.0, 1.0),
	"2.5x1": (2.5, 1.0),
	"4x2": (4.0, 2.0),
}
DEFAULT_LABEL_SIZE = "2x1"

PAGE_SIZES_MM = {
	"a4": (210.0, 297.0),
	"letter": (215.9, 279.4),
	"legal": (215.9, 355.6),
}
DEFAULT_PAGE_SIZE = "a4"
DEFAULT_MARGIN_INCHES = 0.0

LAYOUT_ABSOLUTE = "absolute"
LAYOUT_FLOW = "flow"
LAYOUT_MODES = (LAYOUT_ABSOLUTE, LAYOUT_FLOW)

FLEX_DIRECTIONS = ("row", "column")
JUSTIFY_VALUES = (
	"flex-start",
	"center",
	"flex-end",
	"space-between",
	"space-around",
	"space-evenly",
)
ALIGN_VALUES = ("flex-start", "center", "flex-end", "stretch")
TEXT_ALIGN_VALUES = ("left", "center", "right")

ROOT_FLEX_DIRECTION = "column"
ROOT_JUSTIFY = "flex-start"
ROOT_ALIGN = "stretch"
ROOT_GAP_PX = 4.0
ROOT_PADDING_PX = 8.0
GROUP_FLEX_DIRECTION = "row"

SYMBOLOGIES = ("EAN13", "CODE128", "CODE39", "UPC_A", "ITF")
DEFAULT_SYMBOLOGY = "EAN13"
SYMBOLOGY_ALIASES = {
	"EAN": "EAN13",
	"EAN-13": "EAN13",
	"UPC": "UPC_A",
	"UPCA": "UPC_A",
	"UPC-A": "UPC_A",
	"CODE-128": "CODE128",
	"CODE-39": "CODE39",
	"ITF14": "ITF",
	"ITF-14": "ITF",
}
SAMPLE_BARCODE_VALUES = {
	"EAN13": "1234567890123",
	"CODE128": "SAMPLE123",
	"CODE39": "SAMPLE",
	"UPC_A": "123456789012",
	"ITF": "12345678901234",
}
CODE128_MAX_LENGTH = 80
BARCODE_ASPECT_RATIO = 2.5
BARCODE_TEXT_RESERVE = 0.2
BARCODE_FONT_SCALE = 0.15
BARCODE_MIN_FONT_PX = 8
PLACEHOLDER_FONT_SCALE = 0.1
PLACEHOLDER_TEXT = "Invalid Barcode"
PLACEHOLDER_COLOR = "#FF0000"

DEFAULT_FONT_REGULAR_FILES = (
	"DejaVuSans.ttf",
	"LiberationSans-Regular.ttf",
	"Arial.ttf",
	"arial.ttf",
)
DEFAULT_FONT_BOLD_FILES = (
	"DejaVuSans-Bold.ttf",
	"LiberationSans-Bold.ttf",
	"Arial Bold.ttf",
	"arialbd.ttf",
)
BOLD_WEIGHT = 700

DEFAULT_TEXT_SIZE = 12.0
DEFAULT_TEXT_WEIGHT = "normal"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_TEXT_ALIGN = "left"
DEFAULT_TEXT_CONTENT = "Sample Text"
TEXT_PADDING_PX = 5.0

DEFAULT_TEXT_HEIGHT_PX = 20.0
DEFAULT_BARCODE_HEIGHT_PX = 50.0
DEFAULT_BARCODE_WIDTH_PERCENT = 80.0
DEFAULT_ELEMENT_HEIGHT_PX = 40.0
DEFAULT_SHAPE = "rectangle"
DEFAULT_SHAPE_COLOR = "#CCCCCC"
SHAPES = ("rectangle", "ellipse")
IMAGE_SCALE = 0.95
BACKGROUND_COLOR = "#FFFFFF"

MIN_ELEMENT_SIZE_INCHES = 0.1
GRID_SIZE_PX = 10.0
RESIZE_HANDLES = ("nw", "ne", "sw", "se")

QUANTITY_POLICIES = ("column", "fixed", "manual")
DEFAULT_QUANTITY = 1

ARCHIVE_NAMING_ROW_COPY = "row_copy"
ARCHIVE_NAMING_SEQUENTIAL = "sequential"
ARCHIVE_NAMINGS = (ARCHIVE_NAMING_ROW_COPY, ARCHIVE_NAMING_SEQUENTIAL)

DEFAULT_WORKERS = 4
RENDER_CHUNK_SIZE = 64
PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 10
OUTLINE_LINE_WIDTH = 0.3
OUTLINE_GRAY = 0.7
PARTIAL_SUFFIX = ".partial"
DOCUMENT_TITLE = "Barcode labels"


@dataclasses.dataclass
class ArchiveConfig:
	dpi: int
	naming: str
	workers: int


@dataclasses.dataclass
class PrintConfig:
	page_size: str
	margin_inches: float
	zero_waste: bool
	dpi: int
	draw_outlines: bool
	workers: int


@dataclasses.dataclass
class ExportResult:
	total_labels: int
	skipped_rows: int
	pages: int
	labels_per_page: int
	warnings: list = dataclasses.field(default_factory=list)
