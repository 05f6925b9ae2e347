"""
JSON template reading and writing.

Wire keys are camelCase, as stored by the designer front end.
"""

# Standard Library
import json
import pathlib
import typing

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.errors
import barcode_label_studio.geometry
import barcode_label_studio.template


Box = bls.geometry.Box
ValidationError = bls.errors.ValidationError
FlowSettings = bls.template.FlowSettings
RelativeSize = bls.template.RelativeSize
LabelTemplate = bls.template.LabelTemplate
Element = bls.template.Element
TextElement = bls.template.TextElement
BarcodeElement = bls.template.BarcodeElement
ImageElement = bls.template.ImageElement
ShapeElement = bls.template.ShapeElement
GroupElement = bls.template.GroupElement

LAYOUT_FLOW = bls.config.LAYOUT_FLOW
BACKGROUND_COLOR = bls.config.BACKGROUND_COLOR


#============================================
def _number(data: dict, *keys: str) -> float | None:
	"""
	Read the first present numeric key.

	Args:
		data: Source mapping.
		keys: Candidate keys, preferred first.

	Returns:
		Float value or None.
	"""
	for key in keys:
		if data.get(key) is None:
			continue
		try:
			return float(data[key])
		except (TypeError, ValueError) as error:
			raise ValidationError(f"'{key}' is not a number: {data[key]!r}") from error
	return None


def _number_or(data: dict, default: float, *keys: str) -> float:
	value = _number(data, *keys)
	return default if value is None else value


#============================================
def flow_from_dict(data: dict | None, default: FlowSettings | None) -> FlowSettings | None:
	"""
	Parse flow settings, filling gaps from a default.

	Args:
		data: Flow mapping or None.
		default: Settings used for absent keys.

	Returns:
		FlowSettings, or default when data is empty.
	"""
	if not data:
		return default
	base = default or FlowSettings()
	return FlowSettings(
		direction=data.get("direction", data.get("flexDirection", base.direction)),
		justify=data.get("justify", data.get("justifyContent", base.justify)),
		align=data.get("align", data.get("alignItems", base.align)),
		gap_px=_number_or(data, base.gap_px, "gapPx", "gap"),
		padding_px=_number_or(data, base.padding_px, "paddingPx", "padding"),
		margin_px=_number_or(data, base.margin_px, "marginPx", "margin"),
	)


def flow_to_dict(flow: FlowSettings) -> dict:
	return {
		"direction": flow.direction,
		"justify": flow.justify,
		"align": flow.align,
		"gapPx": flow.gap_px,
		"paddingPx": flow.padding_px,
		"marginPx": flow.margin_px,
	}


#============================================
def element_from_dict(data: dict) -> Element:
	"""
	Parse one element and its children.

	Args:
		data: Element mapping with a "type" key.

	Returns:
		Element instance.

	Raises:
		ValidationError: For unknown types or malformed numbers.
	"""
	kind = data.get("type")
	if kind not in bls.template.ELEMENT_TYPES:
		raise ValidationError(f"element '{data.get('id')}' has unknown type '{kind}'")
	common: dict[str, typing.Any] = {"id": str(data.get("id", ""))}
	box_data = data.get("box")
	if box_data:
		common["box"] = Box(
			x=_number_or(box_data, 0.0, "x"),
			y=_number_or(box_data, 0.0, "y"),
			width=_number_or(box_data, 0.0, "width"),
			height=_number_or(box_data, 0.0, "height"),
		)
	size_data = data.get("size")
	if size_data:
		common["size"] = RelativeSize(
			width_percent=_number(size_data, "widthPercent"),
			height_percent=_number(size_data, "heightPercent"),
			height_px=_number(size_data, "heightPx"),
		)
	flow_data = data.get("flow")
	if flow_data:
		default_flow = bls.template.GROUP_FLOW if kind == "group" else FlowSettings()
		common["flow"] = flow_from_dict(flow_data, default_flow)

	if kind == "text":
		return TextElement(
			content=data.get("content"),
			data_field=data.get("dataField"),
			font_size=_number_or(data, bls.config.DEFAULT_TEXT_SIZE, "fontSize"),
			font_weight=str(data.get("fontWeight", bls.config.DEFAULT_TEXT_WEIGHT)),
			color=data.get("color", bls.config.DEFAULT_TEXT_COLOR),
			align=data.get("align", bls.config.DEFAULT_TEXT_ALIGN),
			**common,
		)
	if kind == "barcode":
		value = data.get("value")
		return BarcodeElement(
			value=None if value is None else str(value),
			data_field=data.get("dataField"),
			symbology=data.get("symbology", data.get("format", bls.config.DEFAULT_SYMBOLOGY)),
			display_value=bool(data.get("displayValue", True)),
			color=data.get("color", bls.config.DEFAULT_TEXT_COLOR),
			**common,
		)
	if kind == "image":
		return ImageElement(source=data.get("source", data.get("src", "")), **common)
	if kind == "shape":
		return ShapeElement(
			shape=data.get("shape", bls.config.DEFAULT_SHAPE),
			color=data.get("color", bls.config.DEFAULT_SHAPE_COLOR),
			outline_color=data.get("outlineColor"),
			**common,
		)
	children = tuple(element_from_dict(child) for child in data.get("children", []))
	return GroupElement(children=children, **common)


#============================================
def element_to_dict(element: Element) -> dict:
	"""
	Serialize one element and its children.

	Args:
		element: Element instance.

	Returns:
		JSON-ready mapping.
	"""
	data: dict[str, typing.Any] = {"id": element.id, "type": element.kind}
	if element.box is not None:
		data["box"] = {
			"x": element.box.x,
			"y": element.box.y,
			"width": element.box.width,
			"height": element.box.height,
		}
	if element.size is not None:
		size = {
			"widthPercent": element.size.width_percent,
			"heightPercent": element.size.height_percent,
			"heightPx": element.size.height_px,
		}
		data["size"] = {key: value for key, value in size.items() if value is not None}
	if element.flow is not None:
		data["flow"] = flow_to_dict(element.flow)
	if isinstance(element, TextElement):
		if element.content is not None:
			data["content"] = element.content
		if element.data_field:
			data["dataField"] = element.data_field
		data["fontSize"] = element.font_size
		data["fontWeight"] = element.font_weight
		data["color"] = element.color
		data["align"] = element.align
	elif isinstance(element, BarcodeElement):
		if element.value is not None:
			data["value"] = element.value
		if element.data_field:
			data["dataField"] = element.data_field
		data["symbology"] = element.symbology
		data["displayValue"] = element.display_value
		data["color"] = element.color
	elif isinstance(element, ImageElement):
		data["source"] = element.source
	elif isinstance(element, ShapeElement):
		data["shape"] = element.shape
		data["color"] = element.color
		if element.outline_color:
			data["outlineColor"] = element.outline_color
	elif isinstance(element, GroupElement):
		data["children"] = [element_to_dict(child) for child in element.children]
	return data


#============================================
def template_from_dict(data: dict) -> LabelTemplate:
	"""
	Build a template from its JSON mapping.

	Args:
		data: Template mapping.

	Returns:
		LabelTemplate, not yet validated.

	Raises:
		ValidationError: When required keys are missing or malformed.
	"""
	width = _number(data, "width", "widthInches")
	height = _number(data, "height", "heightInches")
	if width is None or height is None:
		raise ValidationError("template needs width and height in inches")
	dpi = _number(data, "dpi")
	elements = tuple(element_from_dict(item) for item in data.get("elements", []))
	return LabelTemplate(
		width=width,
		height=height,
		elements=elements,
		layout_mode=data.get("layoutMode", LAYOUT_FLOW),
		dpi=None if dpi is None else int(dpi),
		flow=flow_from_dict(data.get("flow"), bls.template.ROOT_FLOW),
		column_mapping=dict(data.get("columnMapping", {})),
		background=data.get("background", BACKGROUND_COLOR),
		name=data.get("name", "Label"),
	)


#============================================
def template_to_dict(template: LabelTemplate) -> dict:
	"""
	Serialize a template to its JSON mapping.

	Args:
		template: Template snapshot.

	Returns:
		JSON-ready mapping.
	"""
	data: dict[str, typing.Any] = {
		"name": template.name,
		"width": template.width,
		"height": template.height,
		"layoutMode": template.layout_mode,
		"flow": flow_to_dict(template.flow),
		"background": template.background,
		"elements": [element_to_dict(element) for element in template.elements],
	}
	if template.dpi is not None:
		data["dpi"] = template.dpi
	if template.column_mapping:
		data["columnMapping"] = dict(template.column_mapping)
	return data


#============================================
def load_template(path: pathlib.Path) -> LabelTemplate:
	"""
	Read a template JSON file.

	Args:
		path: Template path.

	Returns:
		LabelTemplate.
	"""
	with path.open("r", encoding="utf-8") as handle:
		data = json.load(handle)
	if not isinstance(data, dict):
		raise ValidationError(f"{path} does not hold a template object")
	return template_from_dict(data)


def save_template(template: LabelTemplate, path: pathlib.Path) -> None:
	with path.open("w", encoding="utf-8") as handle:
		json.dump(template_to_dict(template), handle, indent=2, sort_keys=True)
		handle.write("\n")
