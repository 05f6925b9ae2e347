"""
Layout engine: resolve every element of a template to a box.

Layout is computed in inches and is independent of DPI; pixel boxes are
derived at the very end so a preview and an export differ only by scale.
"""

# Standard Library
import dataclasses
import typing

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.binding
import barcode_label_studio.config
import barcode_label_studio.geometry
import barcode_label_studio.template


Box = bls.geometry.Box
PixelBox = bls.geometry.PixelBox
Element = bls.template.Element
LabelTemplate = bls.template.LabelTemplate
FlowSettings = bls.template.FlowSettings
GroupElement = bls.template.GroupElement
TextElement = bls.template.TextElement
BarcodeElement = bls.template.BarcodeElement
ImageElement = bls.template.ImageElement
ShapeElement = bls.template.ShapeElement

LAYOUT_ABSOLUTE = bls.config.LAYOUT_ABSOLUTE
BARCODE_ASPECT_RATIO = bls.config.BARCODE_ASPECT_RATIO
DEFAULT_TEXT_HEIGHT_PX = bls.config.DEFAULT_TEXT_HEIGHT_PX
DEFAULT_BARCODE_WIDTH_PERCENT = bls.config.DEFAULT_BARCODE_WIDTH_PERCENT
DEFAULT_ELEMENT_HEIGHT_PX = bls.config.DEFAULT_ELEMENT_HEIGHT_PX


@dataclasses.dataclass(frozen=True)
class ResolvedNode:
	element: Element
	frame: Box
	box: PixelBox
	content: str = ""
	children: tuple["ResolvedNode", ...] = ()
	visible: bool = True

	@property
	def element_id(self) -> str:
		return self.element.id

	@property
	def kind(self) -> str:
		return self.element.kind


@dataclasses.dataclass(frozen=True)
class ResolvedLayout:
	width: float
	height: float
	dpi: float
	width_px: int
	height_px: int
	nodes: tuple[ResolvedNode, ...]

	def iter_nodes(self) -> typing.Iterator[ResolvedNode]:
		yield from iter_nodes(self.nodes)


def iter_nodes(nodes: tuple[ResolvedNode, ...]) -> typing.Iterator[ResolvedNode]:
	for node in nodes:
		yield node
		yield from iter_nodes(node.children)


def css(value: float | None) -> float:
	return bls.geometry.css_to_inches(value or 0.0)


def element_margin(element: Element) -> float:
	if element.flow is None:
		return 0.0
	return css(element.flow.margin_px)


def group_flow(element: GroupElement) -> FlowSettings:
	return element.flow or bls.template.GROUP_FLOW


def is_empty_group(element: Element) -> bool:
	return isinstance(element, GroupElement) and not element.children


#============================================
def deflate(frame: Box, padding: float) -> Box:
	"""
	Shrink a frame by padding on every side.

	Args:
		frame: Outer frame.
		padding: Padding in inches.

	Returns:
		Inner frame, never negative.
	"""
	return Box(
		x=frame.x + padding,
		y=frame.y + padding,
		width=max(0.0, frame.width - 2.0 * padding),
		height=max(0.0, frame.height - 2.0 * padding),
	)


#============================================
def justify_offsets(justify: str, free: float, count: int, gap: float) -> tuple[float, float]:
	"""
	Compute main-axis start offset and step between items.

	Args:
		justify: justify-content keyword.
		free: Free space along the main axis, clamped to zero or more.
		count: Number of items.
		gap: Gap between items.

	Returns:
		Tuple of (start_offset, spacing_between_items).
	"""
	free = max(0.0, free)
	if count <= 0:
		return (0.0, gap)
	if justify == "center":
		return (free / 2.0, gap)
	if justify == "flex-end":
		return (free, gap)
	if justify == "space-between":
		if count == 1:
			return (0.0, gap)
		return (0.0, gap + free / (count - 1))
	if justify == "space-around":
		unit = free / (2.0 * count)
		return (unit, gap + 2.0 * unit)
	if justify == "space-evenly":
		unit = free / (count + 1.0)
		return (unit, gap + unit)
	return (0.0, gap)


#============================================
def measure(element: Element, available_width: float, available_height: float) -> tuple[float, float]:
	"""
	Compute the intrinsic size of an element, margins excluded.

	Leaves take a percentage of the parent's width and an explicit or
	default height; groups wrap their children plus padding and gaps.

	Args:
		element: Element to measure.
		available_width: Parent content width in inches.
		available_height: Parent content height in inches.

	Returns:
		Tuple of (width, height) in inches.
	"""
	if isinstance(element, GroupElement):
		children = [child for child in element.children if not is_empty_group(child)]
		if not children:
			return (0.0, 0.0)
		flow = group_flow(element)
		padding = css(flow.padding_px)
		gap = css(flow.gap_px)
		inner_width = max(0.0, available_width - 2.0 * padding)
		inner_height = max(0.0, available_height - 2.0 * padding)
		widths: list[float] = []
		heights: list[float] = []
		for child in children:
			width, height = measure(child, inner_width, inner_height)
			margin = element_margin(child)
			widths.append(width + 2.0 * margin)
			heights.append(height + 2.0 * margin)
		gaps = gap * (len(children) - 1)
		if flow.direction == "row":
			return (sum(widths) + gaps + 2.0 * padding, max(heights) + 2.0 * padding)
		return (max(widths) + 2.0 * padding, sum(heights) + gaps + 2.0 * padding)

	size = element.size or bls.template.RelativeSize()
	default_percent = DEFAULT_BARCODE_WIDTH_PERCENT if isinstance(element, BarcodeElement) else 100.0
	percent = size.width_percent if size.width_percent is not None else default_percent
	width = available_width * percent / 100.0
	if size.height_percent is not None:
		height = available_height * size.height_percent / 100.0
	elif size.height_px is not None:
		height = css(size.height_px)
	elif isinstance(element, BarcodeElement):
		height = width / BARCODE_ASPECT_RATIO
	elif isinstance(element, TextElement):
		height = css(DEFAULT_TEXT_HEIGHT_PX)
	elif isinstance(element, (ImageElement, ShapeElement)):
		height = css(DEFAULT_ELEMENT_HEIGHT_PX)
	else:
		raise TypeError(f"unknown element kind '{element.kind}'")
	return (width, height)


#============================================
def layout_children(
	children: tuple[Element, ...],
	inner: Box,
	flow: FlowSettings,
	values: dict[str, str],
	dpi: float,
) -> tuple[ResolvedNode, ...]:
	"""
	Position children inside a flow container.

	Args:
		children: Child elements in order.
		inner: Container content frame, padding already removed.
		flow: Container flow settings.
		values: Resolved content by element id.
		dpi: Target DPI for pixel boxes.

	Returns:
		Resolved nodes in child order.
	"""
	is_row = flow.direction == "row"
	gap = css(flow.gap_px)
	main_available = inner.width if is_row else inner.height
	cross_available = inner.height if is_row else inner.width

	participating = [child for child in children if not is_empty_group(child)]
	sizes = [measure(child, inner.width, inner.height) for child in participating]
	margins = [element_margin(child) for child in participating]
	main_sizes = [
		(size[0] if is_row else size[1]) + 2.0 * margin
		for size, margin in zip(sizes, margins)
	]
	count = len(participating)
	content = sum(main_sizes) + gap * max(0, count - 1)
	start, step = justify_offsets(flow.justify, main_available - content, count, gap)

	placed: dict[int, ResolvedNode] = {}
	position = start
	for index, child in enumerate(participating):
		width, height = sizes[index]
		margin = margins[index]
		cross_size = height if is_row else width
		if flow.align == "stretch":
			cross_size = max(0.0, cross_available - 2.0 * margin)
			cross_offset = 0.0
		else:
			cross_offset = bls.geometry.compute_align_offset(
				cross_available,
				cross_size + 2.0 * margin,
				flow.align,
			)
		if is_row:
			frame = Box(
				x=inner.x + position + margin,
				y=inner.y + cross_offset + margin,
				width=width,
				height=cross_size,
			)
		else:
			frame = Box(
				x=inner.x + cross_offset + margin,
				y=inner.y + position + margin,
				width=cross_size,
				height=height,
			)
		placed[id(child)] = place(child, frame, values, dpi)
		position += main_sizes[index] + step

	nodes: list[ResolvedNode] = []
	for child in children:
		if id(child) in placed:
			nodes.append(placed[id(child)])
			continue
		empty = Box(x=inner.x, y=inner.y, width=0.0, height=0.0)
		nodes.append(
			ResolvedNode(
				element=child,
				frame=empty,
				box=bls.geometry.box_to_pixels(empty, dpi),
				visible=False,
			)
		)
	return tuple(nodes)


#============================================
def place(element: Element, frame: Box, values: dict[str, str], dpi: float) -> ResolvedNode:
	"""
	Build the resolved node for an element at a frame.

	Args:
		element: Element to place.
		frame: Frame in inches.
		values: Resolved content by element id.
		dpi: Target DPI.

	Returns:
		ResolvedNode with children laid out for groups.
	"""
	children: tuple[ResolvedNode, ...] = ()
	if isinstance(element, GroupElement):
		flow = group_flow(element)
		inner = deflate(frame, css(flow.padding_px))
		children = layout_children(element.children, inner, flow, values, dpi)
	return ResolvedNode(
		element=element,
		frame=frame,
		box=bls.geometry.box_to_pixels(frame, dpi),
		content=values.get(element.id, ""),
		children=children,
		visible=frame.width > 0 and frame.height > 0,
	)


#============================================
def layout_absolute(elements: tuple[Element, ...], values: dict[str, str], dpi: float) -> tuple[ResolvedNode, ...]:
	"""
	Resolve elements whose boxes are authoritative canvas coordinates.

	Args:
		elements: Elements in paint order.
		values: Resolved content by element id.
		dpi: Target DPI.

	Returns:
		Resolved nodes.
	"""
	nodes: list[ResolvedNode] = []
	for element in elements:
		children: tuple[ResolvedNode, ...] = ()
		if isinstance(element, GroupElement):
			children = layout_absolute(element.children, values, dpi)
			frame = element.box
			if frame is None:
				frame = bls.geometry.union_boxes([child.frame for child in children if child.visible])
			if frame is None:
				frame = Box(x=0.0, y=0.0, width=0.0, height=0.0)
		else:
			frame = element.box or Box(x=0.0, y=0.0, width=0.0, height=0.0)
		nodes.append(
			ResolvedNode(
				element=element,
				frame=frame,
				box=bls.geometry.box_to_pixels(frame, dpi),
				content=values.get(element.id, ""),
				children=children,
				visible=frame.width > 0 and frame.height > 0,
			)
		)
	return tuple(nodes)


#============================================
def resolve_layout(
	template: LabelTemplate,
	dpi: float,
	row: bls.binding.DataRow | None = None,
	values: dict[str, str] | None = None,
	issues: list | None = None,
	row_index: int | None = None,
) -> ResolvedLayout:
	"""
	Resolve content and boxes for every element of a template.

	Args:
		template: Template snapshot.
		dpi: Target DPI for pixel boxes.
		row: Data row used when values is not given.
		values: Pre-resolved content by element id.
		issues: Optional list collecting binding warnings.
		row_index: Row index used in warnings.

	Returns:
		ResolvedLayout.
	"""
	if values is None:
		values = bls.binding.resolve_values(template, row, issues=issues, row_index=row_index)
	canvas = Box(x=0.0, y=0.0, width=template.width, height=template.height)
	if template.layout_mode == LAYOUT_ABSOLUTE:
		nodes = layout_absolute(template.elements, values, dpi)
	else:
		inner = deflate(canvas, css(template.flow.padding_px))
		nodes = layout_children(template.elements, inner, template.flow, values, dpi)
	canvas_px = bls.geometry.box_to_pixels(canvas, dpi)
	return ResolvedLayout(
		width=template.width,
		height=template.height,
		dpi=dpi,
		width_px=canvas_px.width,
		height_px=canvas_px.height,
		nodes=nodes,
	)
