"""
Rasterizer: paint a resolved label layout onto a Pillow surface.
"""

# Standard Library
import pathlib

# PIP3 modules
import PIL.Image
import PIL.ImageDraw

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.barcodes
import barcode_label_studio.binding
import barcode_label_studio.config
import barcode_label_studio.drawing
import barcode_label_studio.geometry
import barcode_label_studio.layout
import barcode_label_studio.template


PixelBox = bls.geometry.PixelBox
ResolvedNode = bls.layout.ResolvedNode
ResolvedLayout = bls.layout.ResolvedLayout
LabelTemplate = bls.template.LabelTemplate
TextElement = bls.template.TextElement
BarcodeElement = bls.template.BarcodeElement
ImageElement = bls.template.ImageElement
ShapeElement = bls.template.ShapeElement
GroupElement = bls.template.GroupElement

CSS_DPI = bls.config.CSS_DPI
DISPLAY_DPI = bls.config.DISPLAY_DPI
TEXT_PADDING_PX = bls.config.TEXT_PADDING_PX
IMAGE_SCALE = bls.config.IMAGE_SCALE
DEFAULT_SHAPE_COLOR = bls.config.DEFAULT_SHAPE_COLOR

ImageCache = dict[str, PIL.Image.Image | None]


#============================================
def build_image_cache(template: LabelTemplate, base_dir: pathlib.Path | None = None) -> ImageCache:
	"""
	Load every image referenced by a template once.

	Args:
		template: Template snapshot.
		base_dir: Directory relative sources are resolved against.

	Returns:
		Cache of RGBA images keyed by source; None marks a missing file.
	"""
	image_cache: ImageCache = {}
	for element in bls.template.iter_elements(template.elements):
		if not isinstance(element, ImageElement) or not element.source:
			continue
		if element.source in image_cache:
			continue
		path = pathlib.Path(element.source)
		if base_dir is not None and not path.is_absolute():
			path = base_dir / path
		try:
			with PIL.Image.open(path) as source:
				image_cache[element.source] = source.convert("RGBA")
		except OSError:
			image_cache[element.source] = None
	return image_cache


#============================================
def scale_css(value: float, dpi: float) -> int:
	return bls.geometry.round_half_up(value * dpi / CSS_DPI)


#============================================
def draw_text_node(surface: PIL.Image.Image, node: ResolvedNode, dpi: float) -> None:
	"""
	Draw a text element as one clipped line.

	Args:
		surface: Target surface.
		node: Resolved text node.
		dpi: Surface DPI.
	"""
	element = node.element
	font = bls.drawing.load_font(max(1, scale_css(element.font_size, dpi)), element.font_weight)
	fill = bls.drawing.parse_color(element.color)
	padding = TEXT_PADDING_PX * dpi / CSS_DPI
	bls.drawing.draw_text_line(surface, node.content, font, node.box, element.align, fill, padding)


#============================================
def draw_barcode_node(surface: PIL.Image.Image, node: ResolvedNode) -> None:
	"""
	Draw a barcode element at its box size.

	Args:
		surface: Target surface.
		node: Resolved barcode node.
	"""
	element = node.element
	symbol_image = bls.barcodes.generate(
		node.content,
		element.symbology,
		node.box.width,
		node.box.height,
		element.display_value,
		element.color,
	)
	surface.paste(symbol_image, (node.box.x, node.box.y))


#============================================
def draw_shape_node(surface: PIL.Image.Image, node: ResolvedNode) -> None:
	"""
	Draw a filled rectangle or ellipse.

	Args:
		surface: Target surface.
		node: Resolved shape node.
	"""
	element = node.element
	box = node.box
	fill = bls.drawing.parse_color(element.color, DEFAULT_SHAPE_COLOR)
	outline = None
	if element.outline_color:
		outline = bls.drawing.parse_color(element.outline_color)
	corners = (box.x, box.y, box.x + box.width - 1, box.y + box.height - 1)
	draw = PIL.ImageDraw.Draw(surface)
	if element.shape == "ellipse":
		draw.ellipse(corners, fill=fill, outline=outline)
	else:
		draw.rectangle(corners, fill=fill, outline=outline)


#============================================
def draw_image_node(surface: PIL.Image.Image, node: ResolvedNode, image_cache: ImageCache) -> None:
	"""
	Draw an image aspect-fit and centered in its box.

	A source that is not in the cache or failed to load draws a grey
	placeholder box.

	Args:
		surface: Target surface.
		node: Resolved image node.
		image_cache: Loaded images by source.
	"""
	box = node.box
	image = image_cache.get(node.element.source)
	if image is None or image.width <= 0 or image.height <= 0:
		fill = bls.drawing.parse_color(DEFAULT_SHAPE_COLOR)
		draw = PIL.ImageDraw.Draw(surface)
		draw.rectangle((box.x, box.y, box.x + box.width - 1, box.y + box.height - 1), fill=fill)
		return
	scale = IMAGE_SCALE if 0.0 < IMAGE_SCALE < 1.0 else 1.0
	fit = min(box.width / image.width, box.height / image.height) * scale
	width = max(1, bls.geometry.round_half_up(image.width * fit))
	height = max(1, bls.geometry.round_half_up(image.height * fit))
	resized = image.resize((width, height), PIL.Image.Resampling.LANCZOS)
	offset_x = box.x + (box.width - width) // 2
	offset_y = box.y + (box.height - height) // 2
	surface.paste(resized, (offset_x, offset_y), mask=resized)


#============================================
def paint_nodes(
	surface: PIL.Image.Image,
	nodes: tuple[ResolvedNode, ...],
	dpi: float,
	image_cache: ImageCache,
) -> None:
	"""
	Paint resolved nodes in paint order, groups by their children.

	Args:
		surface: Target surface.
		nodes: Resolved nodes.
		dpi: Surface DPI.
		image_cache: Loaded images by source.
	"""
	for node in nodes:
		element = node.element
		if isinstance(element, GroupElement):
			paint_nodes(surface, node.children, dpi, image_cache)
			continue
		if node.box.width <= 0 or node.box.height <= 0:
			continue
		if isinstance(element, TextElement):
			draw_text_node(surface, node, dpi)
		elif isinstance(element, BarcodeElement):
			draw_barcode_node(surface, node)
		elif isinstance(element, ShapeElement):
			draw_shape_node(surface, node)
		elif isinstance(element, ImageElement):
			draw_image_node(surface, node, image_cache)
		else:
			raise TypeError(f"unknown element kind '{element.kind}'")


#============================================
def render_layout(template: LabelTemplate, layout: ResolvedLayout, image_cache: ImageCache | None = None) -> PIL.Image.Image:
	"""
	Paint an already resolved layout.

	Args:
		template: Template the layout was resolved from.
		layout: Resolved layout.
		image_cache: Loaded images by source.

	Returns:
		RGB surface of the full label.
	"""
	surface = bls.drawing.new_surface(layout.width_px, layout.height_px, template.background)
	paint_nodes(surface, layout.nodes, layout.dpi, image_cache or {})
	return surface


#============================================
def render_label(
	template: LabelTemplate,
	row: bls.binding.DataRow | None,
	dpi: float,
	image_cache: ImageCache | None = None,
	values: dict[str, str] | None = None,
	issues: list | None = None,
	row_index: int | None = None,
) -> PIL.Image.Image:
	"""
	Render one full label for a data row.

	A pure function of (template, row, dpi): no state is shared between
	calls, so rows can be rendered concurrently.

	Args:
		template: Template snapshot.
		row: Data row, or None for a design-time preview.
		dpi: Target DPI.
		image_cache: Loaded images by source.
		values: Pre-resolved content by element id.
		issues: Optional list collecting binding warnings.
		row_index: Row index used in warnings.

	Returns:
		RGB surface of the full label.
	"""
	layout = bls.layout.resolve_layout(
		template,
		dpi,
		row=row,
		values=values,
		issues=issues,
		row_index=row_index,
	)
	return render_layout(template, layout, image_cache)


def render_preview(template: LabelTemplate, row: bls.binding.DataRow | None = None, image_cache: ImageCache | None = None) -> PIL.Image.Image:
	return render_label(template, row, DISPLAY_DPI, image_cache=image_cache)
