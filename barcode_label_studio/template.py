"""
Label template data model and validation.

A template is an immutable snapshot: edits build a new template, export
reads one snapshot for every row.
"""

# Standard Library
import dataclasses
import typing

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.barcodes
import barcode_label_studio.config
import barcode_label_studio.errors
import barcode_label_studio.geometry


Box = bls.geometry.Box
ValidationError = bls.errors.ValidationError

LAYOUT_ABSOLUTE = bls.config.LAYOUT_ABSOLUTE
LAYOUT_FLOW = bls.config.LAYOUT_FLOW
LAYOUT_MODES = bls.config.LAYOUT_MODES
LABEL_SIZES = bls.config.LABEL_SIZES
DEFAULT_LABEL_SIZE = bls.config.DEFAULT_LABEL_SIZE
FLEX_DIRECTIONS = bls.config.FLEX_DIRECTIONS
JUSTIFY_VALUES = bls.config.JUSTIFY_VALUES
ALIGN_VALUES = bls.config.ALIGN_VALUES
TEXT_ALIGN_VALUES = bls.config.TEXT_ALIGN_VALUES
SHAPES = bls.config.SHAPES
DEFAULT_SYMBOLOGY = bls.config.DEFAULT_SYMBOLOGY
DEFAULT_TEXT_SIZE = bls.config.DEFAULT_TEXT_SIZE
DEFAULT_TEXT_WEIGHT = bls.config.DEFAULT_TEXT_WEIGHT
DEFAULT_TEXT_COLOR = bls.config.DEFAULT_TEXT_COLOR
DEFAULT_TEXT_ALIGN = bls.config.DEFAULT_TEXT_ALIGN
DEFAULT_SHAPE = bls.config.DEFAULT_SHAPE
DEFAULT_SHAPE_COLOR = bls.config.DEFAULT_SHAPE_COLOR
DEFAULT_BARCODE_HEIGHT_PX = bls.config.DEFAULT_BARCODE_HEIGHT_PX
BACKGROUND_COLOR = bls.config.BACKGROUND_COLOR


@dataclasses.dataclass(frozen=True)
class FlowSettings:
	direction: str = bls.config.ROOT_FLEX_DIRECTION
	justify: str = bls.config.ROOT_JUSTIFY
	align: str = bls.config.ROOT_ALIGN
	gap_px: float = 0.0
	padding_px: float = 0.0
	margin_px: float = 0.0


ROOT_FLOW = FlowSettings(
	gap_px=bls.config.ROOT_GAP_PX,
	padding_px=bls.config.ROOT_PADDING_PX,
)
GROUP_FLOW = FlowSettings(
	direction=bls.config.GROUP_FLEX_DIRECTION,
	justify="flex-start",
	align="flex-start",
)


@dataclasses.dataclass(frozen=True)
class RelativeSize:
	width_percent: float | None = None
	height_percent: float | None = None
	height_px: float | None = None


@dataclasses.dataclass(frozen=True)
class ElementBase:
	id: str
	box: Box | None = None
	size: RelativeSize | None = None
	flow: FlowSettings | None = None

	kind: typing.ClassVar[str] = ""


@dataclasses.dataclass(frozen=True)
class TextElement(ElementBase):
	content: str | None = None
	data_field: str | None = None
	font_size: float = DEFAULT_TEXT_SIZE
	font_weight: str = DEFAULT_TEXT_WEIGHT
	color: str = DEFAULT_TEXT_COLOR
	align: str = DEFAULT_TEXT_ALIGN

	kind: typing.ClassVar[str] = "text"


@dataclasses.dataclass(frozen=True)
class BarcodeElement(ElementBase):
	value: str | None = None
	data_field: str | None = None
	symbology: str = DEFAULT_SYMBOLOGY
	display_value: bool = True
	color: str = DEFAULT_TEXT_COLOR

	kind: typing.ClassVar[str] = "barcode"


@dataclasses.dataclass(frozen=True)
class ImageElement(ElementBase):
	source: str = ""

	kind: typing.ClassVar[str] = "image"


@dataclasses.dataclass(frozen=True)
class ShapeElement(ElementBase):
	shape: str = DEFAULT_SHAPE
	color: str = DEFAULT_SHAPE_COLOR
	outline_color: str | None = None

	kind: typing.ClassVar[str] = "shape"


@dataclasses.dataclass(frozen=True)
class GroupElement(ElementBase):
	children: tuple["Element", ...] = ()

	kind: typing.ClassVar[str] = "group"


Element = TextElement | BarcodeElement | ImageElement | ShapeElement | GroupElement
ELEMENT_TYPES = {
	cls.kind: cls
	for cls in (TextElement, BarcodeElement, ImageElement, ShapeElement, GroupElement)
}


@dataclasses.dataclass(frozen=True)
class LabelTemplate:
	width: float
	height: float
	elements: tuple[Element, ...] = ()
	layout_mode: str = LAYOUT_FLOW
	dpi: int | None = None
	flow: FlowSettings = ROOT_FLOW
	column_mapping: dict[str, str] = dataclasses.field(default_factory=dict)
	background: str = BACKGROUND_COLOR
	name: str = "Label"


#============================================
def iter_elements(elements: typing.Iterable[Element]) -> typing.Iterator[Element]:
	"""
	Walk elements depth-first in paint order.

	Args:
		elements: Top-level elements.

	Yields:
		Each element, groups before their children.
	"""
	for element in elements:
		yield element
		if isinstance(element, GroupElement):
			yield from iter_elements(element.children)


def find_element(template: LabelTemplate, element_id: str) -> Element | None:
	for element in iter_elements(template.elements):
		if element.id == element_id:
			return element
	return None


#============================================
def bound_field(element: Element, column_mapping: dict[str, str] | None = None) -> str | None:
	"""
	Get the column an element is bound to.

	A ColumnMapping entry is treated the same as data_field on the element.

	Args:
		element: Element to inspect.
		column_mapping: Optional element id to column mapping.

	Returns:
		Column name or None for literal or unbindable elements.
	"""
	if not isinstance(element, (TextElement, BarcodeElement)):
		return None
	if element.data_field:
		return element.data_field
	if column_mapping:
		return column_mapping.get(element.id)
	return None


def has_literal(element: Element) -> bool:
	if isinstance(element, TextElement):
		return element.content is not None
	if isinstance(element, BarcodeElement):
		return element.value is not None
	return False


#============================================
def _validate_flow(owner: str, flow: FlowSettings, problems: list[str]) -> None:
	"""
	Check flow settings values.

	Args:
		owner: Element id or "template" for messages.
		flow: Flow settings to check.
		problems: Collected problem messages.
	"""
	if flow.direction not in FLEX_DIRECTIONS:
		problems.append(f"{owner}: unknown flex direction '{flow.direction}'")
	if flow.justify not in JUSTIFY_VALUES:
		problems.append(f"{owner}: unknown justify value '{flow.justify}'")
	if flow.align not in ALIGN_VALUES:
		problems.append(f"{owner}: unknown align value '{flow.align}'")
	for name in ("gap_px", "padding_px", "margin_px"):
		if getattr(flow, name) < 0:
			problems.append(f"{owner}: {name} is negative")


#============================================
def _validate_element(
	template: LabelTemplate,
	element: Element,
	column_names: list[str] | None,
	problems: list[str],
) -> None:
	"""
	Check a single element, not its children.

	Args:
		template: Owning template.
		element: Element to check.
		column_names: Known data columns, or None to skip column checks.
		problems: Collected problem messages.
	"""
	owner = element.id or "<no id>"
	if not element.id:
		problems.append("element without id")
	if element.box is not None and (element.box.width < 0 or element.box.height < 0):
		problems.append(f"{owner}: box has negative size")
	if element.size is not None:
		for name in ("width_percent", "height_percent", "height_px"):
			value = getattr(element.size, name)
			if value is not None and value < 0:
				problems.append(f"{owner}: {name} is negative")
	if element.flow is not None:
		_validate_flow(owner, element.flow, problems)
	if template.layout_mode == LAYOUT_ABSOLUTE and element.box is None:
		if not isinstance(element, GroupElement):
			problems.append(f"{owner}: absolute layout needs a box")

	field = bound_field(element, template.column_mapping)
	if isinstance(element, TextElement):
		if has_literal(element) and field:
			problems.append(f"{owner}: text has both content and a bound column")
		if not has_literal(element) and not field:
			problems.append(f"{owner}: text has neither content nor a bound column")
		if element.align not in TEXT_ALIGN_VALUES:
			problems.append(f"{owner}: unknown text align '{element.align}'")
		if element.font_size <= 0:
			problems.append(f"{owner}: font size must be positive")
	elif isinstance(element, BarcodeElement):
		if has_literal(element) and field:
			problems.append(f"{owner}: barcode has both a value and a bound column")
		if bls.barcodes.normalize_symbology(element.symbology) is None:
			problems.append(f"{owner}: unknown symbology '{element.symbology}'")
	elif isinstance(element, ShapeElement):
		if element.shape not in SHAPES:
			problems.append(f"{owner}: unknown shape '{element.shape}'")
	if field and column_names is not None and field not in column_names:
		problems.append(f"{owner}: bound to missing column '{field}'")


#============================================
def validate_template(template: LabelTemplate, column_names: list[str] | None = None) -> None:
	"""
	Validate a template before rendering.

	Args:
		template: Template to check.
		column_names: Data columns; when given, bound columns must exist.

	Raises:
		ValidationError: With every problem found, one per line.
	"""
	problems: list[str] = []
	if template.width <= 0 or template.height <= 0:
		problems.append(f"canvas size must be positive, got {template.width}x{template.height}")
	if template.layout_mode not in LAYOUT_MODES:
		problems.append(f"unknown layout mode '{template.layout_mode}'")
	if template.dpi is not None and template.dpi <= 0:
		problems.append("dpi must be positive")
	_validate_flow("template", template.flow, problems)

	seen_ids: set[str] = set()
	# identity of groups on the current path; a repeat means a cycle
	path: list[int] = []

	def visit(elements: tuple) -> None:
		for element in elements:
			if id(element) in path:
				problems.append(f"{element.id}: group nesting forms a cycle")
				continue
			if element.id in seen_ids:
				problems.append(f"{element.id}: duplicate element id")
			seen_ids.add(element.id)
			_validate_element(template, element, column_names, problems)
			if isinstance(element, GroupElement):
				path.append(id(element))
				visit(element.children)
				path.pop()

	visit(template.elements)
	for element_id in template.column_mapping:
		if element_id not in seen_ids:
			problems.append(f"column mapping names unknown element '{element_id}'")
	if problems:
		raise ValidationError("Invalid template:\n" + "\n".join(problems))


#============================================
def label_size_inches(size_name: str, custom: tuple[float, float] | None = None) -> tuple[float, float]:
	"""
	Look up a label size preset.

	Args:
		size_name: Preset name like "2x1" or "custom".
		custom: Width and height used for "custom".

	Returns:
		Tuple of (width, height) in inches.
	"""
	if size_name == "custom" and custom is not None:
		return custom
	return LABEL_SIZES.get(size_name, LABEL_SIZES[DEFAULT_LABEL_SIZE])


#============================================
def build_default_template(
	barcode_column: str | None,
	text_columns: list[str],
	size_name: str = DEFAULT_LABEL_SIZE,
	symbology: str = DEFAULT_SYMBOLOGY,
) -> LabelTemplate:
	"""
	Build a starter flow template from a column mapping.

	Args:
		barcode_column: Column holding barcode values, or None.
		text_columns: Columns to show as text lines, in order.
		size_name: Label size preset.
		symbology: Barcode symbology.

	Returns:
		LabelTemplate with a barcode followed by one text per column.
	"""
	width, height = label_size_inches(size_name)
	elements: list[Element] = []
	if barcode_column:
		elements.append(
			BarcodeElement(
				id="element_1",
				data_field=barcode_column,
				symbology=symbology,
				size=RelativeSize(height_px=DEFAULT_BARCODE_HEIGHT_PX),
			)
		)
	for column in text_columns:
		elements.append(
			TextElement(
				id=f"element_{len(elements) + 1}",
				data_field=column,
			)
		)
	return LabelTemplate(width=width, height=height, elements=tuple(elements))
