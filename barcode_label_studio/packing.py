"""
Page packing: how many labels fit on a sheet, and where each one goes.

All positions are millimeters from the top-left corner of the page.
"""

# Standard Library
import dataclasses
import math
import typing

# PIP3 modules
import PIL.Image

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.errors


ExportConfigError = bls.errors.ExportConfigError

PAGE_SIZES_MM = bls.config.PAGE_SIZES_MM
MM_PER_INCH = bls.config.MM_PER_INCH

# absorbs float noise such as 7.5 / 2.5 landing just under 3
FIT_EPSILON = 1e-9


@dataclasses.dataclass(frozen=True)
class PackingGrid:
	page_width: float
	page_height: float
	label_width: float
	label_height: float
	columns: int
	rows: int
	origin_x: float
	origin_y: float
	h_spacing: float
	v_spacing: float

	@property
	def labels_per_page(self) -> int:
		return self.columns * self.rows

	def slot_position(self, slot: int) -> tuple[float, float]:
		"""
		Top-left corner of a slot, filled row-major.

		Args:
			slot: Zero-based slot index within a page.

		Returns:
			Tuple of (x_mm, y_mm).
		"""
		row = slot // self.columns
		col = slot % self.columns
		x = self.origin_x + col * (self.label_width + self.h_spacing)
		y = self.origin_y + row * (self.label_height + self.v_spacing)
		return (x, y)


@dataclasses.dataclass(frozen=True)
class Placement:
	surface: PIL.Image.Image
	x: float
	y: float
	width: float
	height: float
	label: typing.Any = None


@dataclasses.dataclass(frozen=True)
class Page:
	index: int
	placements: tuple[Placement, ...]


#============================================
def page_size_mm(name: str) -> tuple[float, float]:
	"""
	Look up a paper size.

	Args:
		name: "a4", "letter" or "legal".

	Returns:
		Tuple of (width_mm, height_mm).
	"""
	key = name.strip().lower()
	if key not in PAGE_SIZES_MM:
		known = ", ".join(sorted(PAGE_SIZES_MM))
		raise ExportConfigError(f"unknown page size '{name}' (known: {known})")
	return PAGE_SIZES_MM[key]


#============================================
def _axis(usable: float, label: float, margin: float, zero_waste: bool) -> tuple[int, float, float]:
	"""
	Pack one page axis.

	Args:
		usable: Usable length inside the margins.
		label: Label length.
		margin: Margin before the usable area.
		zero_waste: Spread leftover space between labels.

	Returns:
		Tuple of (count, origin, spacing).
	"""
	count = math.floor((usable + FIT_EPSILON) / label)
	if count < 1:
		return (0, margin, 0.0)
	leftover = max(0.0, usable - count * label)
	if not zero_waste:
		return (count, margin, 0.0)
	if count == 1:
		return (count, margin + leftover / 2.0, 0.0)
	return (count, margin, leftover / (count - 1))


#============================================
def compute_grid(
	page_width: float,
	page_height: float,
	label_width: float,
	label_height: float,
	margin: float = 0.0,
	zero_waste: bool = False,
) -> PackingGrid:
	"""
	Compute the label grid of one page.

	Without zero-waste the grid starts at the margin and leftover space
	stays at the trailing edges. With zero-waste the leftover becomes
	equal spacing between labels; a single label per axis is centered.

	Args:
		page_width: Page width in mm.
		page_height: Page height in mm.
		label_width: Label width in mm.
		label_height: Label height in mm.
		margin: Margin on every side in mm.
		zero_waste: Spread leftover space between labels.

	Returns:
		PackingGrid.

	Raises:
		ExportConfigError: When not even one label fits.
	"""
	if label_width <= 0 or label_height <= 0:
		raise ExportConfigError(f"label size must be positive, got {label_width}x{label_height} mm")
	if margin < 0:
		raise ExportConfigError("margin must not be negative")
	usable_width = page_width - 2.0 * margin
	usable_height = page_height - 2.0 * margin
	columns, origin_x, h_spacing = _axis(usable_width, label_width, margin, zero_waste)
	rows, origin_y, v_spacing = _axis(usable_height, label_height, margin, zero_waste)
	if columns * rows < 1:
		raise ExportConfigError(
			f"label {label_width:.1f}x{label_height:.1f} mm does not fit the printable area "
			f"{max(0.0, usable_width):.1f}x{max(0.0, usable_height):.1f} mm"
		)
	return PackingGrid(
		page_width=page_width,
		page_height=page_height,
		label_width=label_width,
		label_height=label_height,
		columns=columns,
		rows=rows,
		origin_x=origin_x,
		origin_y=origin_y,
		h_spacing=h_spacing,
		v_spacing=v_spacing,
	)


#============================================
def grid_for_template(
	template_width: float,
	template_height: float,
	page_size: str,
	margin_inches: float,
	zero_waste: bool,
) -> PackingGrid:
	"""
	Compute the grid for a label size in inches on a named page.

	Args:
		template_width: Label width in inches.
		template_height: Label height in inches.
		page_size: Paper size name.
		margin_inches: Margin on every side in inches.
		zero_waste: Spread leftover space between labels.

	Returns:
		PackingGrid in millimeters.
	"""
	page_width, page_height = page_size_mm(page_size)
	return compute_grid(
		page_width,
		page_height,
		template_width * MM_PER_INCH,
		template_height * MM_PER_INCH,
		margin_inches * MM_PER_INCH,
		zero_waste,
	)


def page_count(total: int, grid: PackingGrid) -> int:
	return (total + grid.labels_per_page - 1) // grid.labels_per_page


#============================================
def pack(
	items: typing.Iterable[tuple[PIL.Image.Image, typing.Any]],
	grid: PackingGrid,
) -> typing.Iterator[Page]:
	"""
	Pack rendered labels onto pages in order.

	A page is emitted as soon as it is full, so only one page of
	surfaces is held at a time.

	Args:
		items: Pairs of (surface, label) in output order.
		grid: Page grid.

	Yields:
		Page objects; the last one may be partly filled.
	"""
	per_page = grid.labels_per_page
	placements: list[Placement] = []
	page_index = 0
	for count, (surface, label) in enumerate(items):
		slot = count % per_page
		if slot == 0 and placements:
			yield Page(index=page_index, placements=tuple(placements))
			page_index += 1
			placements = []
		x, y = grid.slot_position(slot)
		placements.append(
			Placement(
				surface=surface,
				x=x,
				y=y,
				width=grid.label_width,
				height=grid.label_height,
				label=label,
			)
		)
	if placements:
		yield Page(index=page_index, placements=tuple(placements))
