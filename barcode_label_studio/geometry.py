"""
Unit conversion and box geometry.

Boxes are stored in inches; pixel boxes are derived per DPI and never stored.
"""

# Standard Library
import dataclasses
import math

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config


CSS_DPI = bls.config.CSS_DPI
MM_PER_INCH = bls.config.MM_PER_INCH
POINTS_PER_INCH = bls.config.POINTS_PER_INCH
GRID_SIZE_PX = bls.config.GRID_SIZE_PX


@dataclasses.dataclass(frozen=True)
class Box:
	x: float
	y: float
	width: float
	height: float

	@property
	def right(self) -> float:
		return self.x + self.width

	@property
	def bottom(self) -> float:
		return self.y + self.height


@dataclasses.dataclass(frozen=True)
class PixelBox:
	x: int
	y: int
	width: int
	height: int


#============================================
def round_half_up(value: float) -> int:
	"""
	Round to the nearest integer, halves away from zero for positives.

	Args:
		value: Value to round.

	Returns:
		Rounded integer.
	"""
	return int(math.floor(value + 0.5))


#============================================
def inches_to_pixels(value: float, dpi: float) -> int:
	"""
	Convert inches to device pixels at the given DPI.

	Args:
		value: Inches value.
		dpi: Dots per inch.

	Returns:
		Nearest whole pixel.
	"""
	return round_half_up(value * dpi)


#============================================
def pixels_to_inches(value: float, dpi: float) -> float:
	"""
	Convert device pixels at the given DPI to inches.

	Args:
		value: Pixel value.
		dpi: Dots per inch.

	Returns:
		Inches value.
	"""
	return value / float(dpi)


def css_to_inches(value: float) -> float:
	return value / float(CSS_DPI)


def inches_to_css(value: float) -> float:
	return value * CSS_DPI


def mm_from_inches(value: float) -> float:
	return value * MM_PER_INCH


def inches_from_mm(value: float) -> float:
	return value / MM_PER_INCH


def inches_to_points(value: float) -> float:
	return value * POINTS_PER_INCH


def mm_to_points(value: float) -> float:
	return inches_to_points(inches_from_mm(value))


#============================================
def box_to_pixels(box: Box, dpi: float) -> PixelBox:
	"""
	Convert an inch box to a device pixel box.

	Edges are rounded independently so adjacent boxes stay adjacent and
	the result differs from an exact scale by at most one pixel per edge.

	Args:
		box: Box in inches.
		dpi: Dots per inch.

	Returns:
		PixelBox.
	"""
	x0 = inches_to_pixels(box.x, dpi)
	y0 = inches_to_pixels(box.y, dpi)
	x1 = inches_to_pixels(box.right, dpi)
	y1 = inches_to_pixels(box.bottom, dpi)
	return PixelBox(x=x0, y=y0, width=max(0, x1 - x0), height=max(0, y1 - y0))


#============================================
def clamp_box(box: Box, container_width: float, container_height: float) -> Box:
	"""
	Clamp a box so it stays inside a container anchored at the origin.

	Args:
		box: Box to clamp.
		container_width: Container width.
		container_height: Container height.

	Returns:
		Clamped box with x in [0, container_width - width].
	"""
	width = min(max(0.0, box.width), container_width)
	height = min(max(0.0, box.height), container_height)
	x = max(0.0, min(box.x, container_width - width))
	y = max(0.0, min(box.y, container_height - height))
	return Box(x=x, y=y, width=width, height=height)


#============================================
def snap_to_grid(value: float, grid_size: float = GRID_SIZE_PX) -> float:
	"""
	Snap a coordinate to the nearest grid line.

	Args:
		value: Coordinate.
		grid_size: Grid spacing, same unit as value.

	Returns:
		Snapped coordinate.
	"""
	if grid_size <= 0:
		return value
	return round_half_up(value / grid_size) * grid_size


def point_in_box(x: float, y: float, box: Box) -> bool:
	return box.x <= x <= box.right and box.y <= y <= box.bottom


#============================================
def boxes_intersect(box_a: Box, box_b: Box) -> bool:
	"""
	Check whether two boxes overlap.

	Args:
		box_a: First box.
		box_b: Second box.

	Returns:
		True if boxes overlap.
	"""
	left = max(box_a.x, box_b.x)
	right = min(box_a.right, box_b.right)
	top = max(box_a.y, box_b.y)
	bottom = min(box_a.bottom, box_b.bottom)
	return right > left and bottom > top


#============================================
def union_boxes(boxes: list[Box]) -> Box | None:
	"""
	Compute the bounding box of several boxes.

	Args:
		boxes: Boxes to merge.

	Returns:
		Bounding box or None when the list is empty.
	"""
	bounds: tuple[float, float, float, float] | None = None
	for box in boxes:
		if bounds is None:
			bounds = (box.x, box.y, box.right, box.bottom)
		else:
			bounds = (
				min(bounds[0], box.x),
				min(bounds[1], box.y),
				max(bounds[2], box.right),
				max(bounds[3], box.bottom),
			)
	if bounds is None:
		return None
	return Box(x=bounds[0], y=bounds[1], width=bounds[2] - bounds[0], height=bounds[3] - bounds[1])


#============================================
def compute_align_offset(available: float, size: float, align: str) -> float:
	"""
	Compute an alignment offset inside an available span.

	Args:
		available: Available dimension.
		size: Content dimension.
		align: Alignment keyword.

	Returns:
		Offset, never negative.
	"""
	normalized = align.strip().lower()
	if normalized in ("left", "top", "flex-start", "start", "stretch"):
		return 0.0
	if normalized in ("right", "bottom", "flex-end", "end"):
		return max(0.0, available - size)
	return max(0.0, (available - size) / 2.0)
