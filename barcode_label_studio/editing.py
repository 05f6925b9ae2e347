"""
Pure template edits.

Every function returns a new LabelTemplate; the given snapshot is never
changed, so an export running on an older snapshot is unaffected.
"""

# Standard Library
import dataclasses
import typing

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.errors
import barcode_label_studio.geometry
import barcode_label_studio.layout
import barcode_label_studio.template


Box = bls.geometry.Box
ValidationError = bls.errors.ValidationError
LabelTemplate = bls.template.LabelTemplate
Element = bls.template.Element
GroupElement = bls.template.GroupElement
TextElement = bls.template.TextElement
BarcodeElement = bls.template.BarcodeElement
FlowSettings = bls.template.FlowSettings

MIN_ELEMENT_SIZE_INCHES = bls.config.MIN_ELEMENT_SIZE_INCHES
RESIZE_HANDLES = bls.config.RESIZE_HANDLES
LAYOUT_ABSOLUTE = bls.config.LAYOUT_ABSOLUTE
LAYOUT_MODES = bls.config.LAYOUT_MODES
DISPLAY_DPI = bls.config.DISPLAY_DPI
DEFAULT_TEXT_CONTENT = bls.config.DEFAULT_TEXT_CONTENT

ElementEdit = typing.Callable[[Element], Element | None]


#============================================
def _edit_tree(elements: tuple[Element, ...], element_id: str, edit: ElementEdit) -> tuple[tuple[Element, ...], bool]:
	"""
	Apply an edit to one element of a tree.

	Args:
		elements: Elements of one container.
		element_id: Element to edit.
		edit: Returns the replacement element, or None to remove it.

	Returns:
		Tuple of (new elements, found flag).
	"""
	result: list[Element] = []
	found = False
	for element in elements:
		if not found and element.id == element_id:
			found = True
			replacement = edit(element)
			if replacement is not None:
				result.append(replacement)
			continue
		if not found and isinstance(element, GroupElement):
			children, found = _edit_tree(element.children, element_id, edit)
			if found:
				element = dataclasses.replace(element, children=children)
		result.append(element)
	return (tuple(result), found)


#============================================
def edit_element(template: LabelTemplate, element_id: str, edit: ElementEdit) -> LabelTemplate:
	"""
	Apply an edit to one element of a template.

	Args:
		template: Template snapshot.
		element_id: Element to edit.
		edit: Returns the replacement element, or None to remove it.

	Returns:
		New template.

	Raises:
		KeyError: When no element has that id.
	"""
	elements, found = _edit_tree(template.elements, element_id, edit)
	if not found:
		raise KeyError(element_id)
	return dataclasses.replace(template, elements=elements)


def get_element(template: LabelTemplate, element_id: str) -> Element:
	element = bls.template.find_element(template, element_id)
	if element is None:
		raise KeyError(element_id)
	return element


#============================================
def update_element_box(template: LabelTemplate, element_id: str, new_box: Box) -> LabelTemplate:
	"""
	Set an element's box, clamped inside the canvas.

	Sizes below the minimum element size are raised to it before the
	position is clamped to [0, canvas - size]. In absolute mode a group's
	descendants follow the group: they are mapped from the old group box
	onto the new one, so a move translates them and a resize scales them.

	Args:
		template: Template snapshot.
		element_id: Element to move or resize.
		new_box: Requested box in inches.

	Returns:
		New template.
	"""
	width = max(MIN_ELEMENT_SIZE_INCHES, new_box.width)
	height = max(MIN_ELEMENT_SIZE_INCHES, new_box.height)
	box = bls.geometry.clamp_box(
		Box(x=new_box.x, y=new_box.y, width=width, height=height),
		template.width,
		template.height,
	)
	element = get_element(template, element_id)
	if isinstance(element, GroupElement) and template.layout_mode == LAYOUT_ABSOLUTE:
		old_box = current_box(template, element_id)
		return edit_element(template, element_id, lambda group: map_subtree(group, old_box, box))
	return edit_element(template, element_id, lambda element: dataclasses.replace(element, box=box))


#============================================
def map_box(box: Box, old_frame: Box, new_frame: Box) -> Box:
	"""
	Map a box from one frame onto another.

	Args:
		box: Box inside old_frame.
		old_frame: Frame before the edit.
		new_frame: Frame after the edit.

	Returns:
		Box at the same relative place inside new_frame.
	"""
	scale_x = new_frame.width / old_frame.width if old_frame.width > 0 else 1.0
	scale_y = new_frame.height / old_frame.height if old_frame.height > 0 else 1.0
	return Box(
		x=new_frame.x + (box.x - old_frame.x) * scale_x,
		y=new_frame.y + (box.y - old_frame.y) * scale_y,
		width=box.width * scale_x,
		height=box.height * scale_y,
	)


#============================================
def map_subtree(element: Element, old_frame: Box, new_frame: Box) -> Element:
	"""
	Move an element and all its descendants from one frame onto another.

	Args:
		element: Element whose boxes are canvas coordinates.
		old_frame: Frame before the edit.
		new_frame: Frame after the edit.

	Returns:
		Element with every stored box mapped.
	"""
	box = element.box
	if box is not None:
		box = map_box(box, old_frame, new_frame)
	if not isinstance(element, GroupElement):
		return dataclasses.replace(element, box=box)
	children = tuple(map_subtree(child, old_frame, new_frame) for child in element.children)
	return dataclasses.replace(element, box=box, children=children)


#============================================
def current_box(template: LabelTemplate, element_id: str) -> Box:
	"""
	Get the box an element currently occupies.

	Args:
		template: Template snapshot.
		element_id: Element id.

	Returns:
		Stored box, or the resolved frame when the element has none.
	"""
	element = get_element(template, element_id)
	if element.box is not None:
		return element.box
	layout = bls.layout.resolve_layout(template, DISPLAY_DPI)
	for node in layout.iter_nodes():
		if node.element_id == element_id:
			return node.frame
	raise KeyError(element_id)


def move_element(template: LabelTemplate, element_id: str, dx: float, dy: float) -> LabelTemplate:
	box = current_box(template, element_id)
	moved = Box(x=box.x + dx, y=box.y + dy, width=box.width, height=box.height)
	return update_element_box(template, element_id, moved)


#============================================
def resize_element(template: LabelTemplate, element_id: str, handle: str, dx: float, dy: float) -> LabelTemplate:
	"""
	Drag one corner handle of an element.

	The corner opposite the handle stays fixed, also when the minimum
	size kicks in.

	Args:
		template: Template snapshot.
		element_id: Element to resize.
		handle: One of "nw", "ne", "sw", "se".
		dx: Horizontal drag distance in inches.
		dy: Vertical drag distance in inches.

	Returns:
		New template.
	"""
	if handle not in RESIZE_HANDLES:
		raise ValueError(f"unknown resize handle '{handle}'")
	box = current_box(template, element_id)
	left, top, right, bottom = box.x, box.y, box.right, box.bottom
	if "w" in handle:
		left = min(left + dx, right - MIN_ELEMENT_SIZE_INCHES)
	else:
		right = max(right + dx, left + MIN_ELEMENT_SIZE_INCHES)
	if "n" in handle:
		top = min(top + dy, bottom - MIN_ELEMENT_SIZE_INCHES)
	else:
		bottom = max(bottom + dy, top + MIN_ELEMENT_SIZE_INCHES)
	# the fixed corner must stay inside the canvas after clamping
	left = max(0.0, left)
	top = max(0.0, top)
	right = min(template.width, right)
	bottom = min(template.height, bottom)
	resized = Box(x=left, y=top, width=right - left, height=bottom - top)
	return update_element_box(template, element_id, resized)


#============================================
def add_element(template: LabelTemplate, element: Element, parent_id: str | None = None) -> LabelTemplate:
	"""
	Append an element to the canvas or to a group.

	Args:
		template: Template snapshot.
		element: New element; its id must be unused.
		parent_id: Group to append to, or None for the canvas.

	Returns:
		New template.
	"""
	if bls.template.find_element(template, element.id) is not None:
		raise ValidationError(f"{element.id}: duplicate element id")
	if parent_id is None:
		return dataclasses.replace(template, elements=template.elements + (element,))

	def append(group: Element) -> Element:
		if not isinstance(group, GroupElement):
			raise ValidationError(f"{parent_id}: only groups hold children")
		return dataclasses.replace(group, children=group.children + (element,))

	return edit_element(template, parent_id, append)


#============================================
def remove_element(template: LabelTemplate, element_id: str) -> LabelTemplate:
	"""
	Delete an element and its whole subtree.

	Args:
		template: Template snapshot.
		element_id: Element to delete.

	Returns:
		New template without the element or its column mapping entries.
	"""
	removed = get_element(template, element_id)
	removed_ids = {element.id for element in bls.template.iter_elements((removed,))}
	edited = edit_element(template, element_id, lambda element: None)
	mapping = {key: value for key, value in template.column_mapping.items() if key not in removed_ids}
	return dataclasses.replace(edited, column_mapping=mapping)


#============================================
def find_container(elements: tuple[Element, ...], element_id: str, parent_id: str | None = None) -> str | None | bool:
	"""
	Find the id of the container holding an element.

	Args:
		elements: Elements of one container.
		element_id: Element to find.
		parent_id: Id of the container being searched.

	Returns:
		Parent group id, None for the canvas, False when not found.
	"""
	for element in elements:
		if element.id == element_id:
			return parent_id
		if isinstance(element, GroupElement):
			found = find_container(element.children, element_id, element.id)
			if found is not False:
				return found
	return False


#============================================
def group_elements(
	template: LabelTemplate,
	element_ids: list[str],
	group_id: str,
	flow: FlowSettings | None = None,
) -> LabelTemplate:
	"""
	Move sibling elements into a new group.

	The group takes the place of the first grouped element and keeps the
	children in their existing order.

	Args:
		template: Template snapshot.
		element_ids: Siblings to group.
		group_id: Id of the new group.
		flow: Flow settings of the group.

	Returns:
		New template.
	"""
	if not element_ids:
		raise ValidationError("nothing to group")
	if bls.template.find_element(template, group_id) is not None:
		raise ValidationError(f"{group_id}: duplicate element id")
	containers = {find_container(template.elements, element_id) for element_id in element_ids}
	if False in containers:
		missing = [eid for eid in element_ids if bls.template.find_element(template, eid) is None]
		raise KeyError(missing[0])
	if len(containers) != 1:
		raise ValidationError("only siblings can be grouped")
	parent_id = containers.pop()
	wanted = set(element_ids)

	def regroup(siblings: tuple[Element, ...]) -> tuple[Element, ...]:
		members = tuple(element for element in siblings if element.id in wanted)
		group = GroupElement(id=group_id, children=members, flow=flow)
		result: list[Element] = []
		for element in siblings:
			if element.id not in wanted:
				result.append(element)
			elif element is members[0]:
				result.append(group)
		return tuple(result)

	if parent_id is None:
		return dataclasses.replace(template, elements=regroup(template.elements))
	return edit_element(
		template,
		parent_id,
		lambda parent: dataclasses.replace(parent, children=regroup(parent.children)),
	)


#============================================
def ungroup_element(template: LabelTemplate, group_id: str) -> LabelTemplate:
	"""
	Dissolve a group, putting its children in its place.

	Args:
		template: Template snapshot.
		group_id: Group to dissolve.

	Returns:
		New template.
	"""
	group = get_element(template, group_id)
	if not isinstance(group, GroupElement):
		raise ValidationError(f"{group_id}: not a group")

	def splice(siblings: tuple[Element, ...]) -> tuple[Element, ...]:
		result: list[Element] = []
		for element in siblings:
			if element.id == group_id:
				result.extend(group.children)
			else:
				result.append(element)
		return tuple(result)

	parent_id = find_container(template.elements, group_id)
	if parent_id is None:
		return dataclasses.replace(template, elements=splice(template.elements))
	return edit_element(
		template,
		parent_id,
		lambda parent: dataclasses.replace(parent, children=splice(parent.children)),
	)


#============================================
def move_to_group(template: LabelTemplate, element_id: str, group_id: str | None) -> LabelTemplate:
	"""
	Move an element, with its subtree, into another group.

	Args:
		template: Template snapshot.
		element_id: Element to move.
		group_id: Target group, or None for the canvas.

	Returns:
		New template.

	Raises:
		ValidationError: When the move would nest a group inside itself.
	"""
	element = get_element(template, element_id)
	if group_id is not None:
		subtree_ids = {item.id for item in bls.template.iter_elements((element,))}
		if group_id in subtree_ids:
			raise ValidationError(f"{element_id}: cannot move a group into itself")
	detached, _found = _edit_tree(template.elements, element_id, lambda item: None)
	return add_element(dataclasses.replace(template, elements=detached), element, group_id)


#============================================
def rebind_element(template: LabelTemplate, element_id: str, column: str | None) -> LabelTemplate:
	"""
	Bind a text or barcode element to a column, or back to a literal.

	Args:
		template: Template snapshot.
		element_id: Element to rebind.
		column: Column name, or None to unbind.

	Returns:
		New template.
	"""

	def rebind(element: Element) -> Element:
		if isinstance(element, TextElement):
			if column:
				return dataclasses.replace(element, data_field=column, content=None)
			return dataclasses.replace(element, data_field=None, content=element.content or DEFAULT_TEXT_CONTENT)
		if isinstance(element, BarcodeElement):
			if column:
				return dataclasses.replace(element, data_field=column, value=None)
			return dataclasses.replace(element, data_field=None)
		raise ValidationError(f"{element_id}: {element.kind} elements cannot be bound")

	edited = edit_element(template, element_id, rebind)
	mapping = dict(template.column_mapping)
	mapping.pop(element_id, None)
	return dataclasses.replace(edited, column_mapping=mapping)


#============================================
def set_layout_mode(template: LabelTemplate, layout_mode: str) -> LabelTemplate:
	"""
	Switch layout mode.

	Switching to absolute mode stores every element's current flow
	position as its box, so nothing jumps on screen.

	Args:
		template: Template snapshot.
		layout_mode: "absolute" or "flow".

	Returns:
		New template.
	"""
	if layout_mode not in LAYOUT_MODES:
		raise ValidationError(f"unknown layout mode '{layout_mode}'")
	if layout_mode == template.layout_mode:
		return template
	if layout_mode != LAYOUT_ABSOLUTE:
		return dataclasses.replace(template, layout_mode=layout_mode)
	layout = bls.layout.resolve_layout(template, DISPLAY_DPI)
	frames = {node.element_id: node.frame for node in layout.iter_nodes()}

	def bake(elements: tuple[Element, ...]) -> tuple[Element, ...]:
		result: list[Element] = []
		for element in elements:
			if isinstance(element, GroupElement):
				result.append(dataclasses.replace(element, box=None, children=bake(element.children)))
			else:
				result.append(dataclasses.replace(element, box=frames[element.id]))
		return tuple(result)

	return dataclasses.replace(template, layout_mode=layout_mode, elements=bake(template.elements))


#============================================
def element_at_point(template: LabelTemplate, x: float, y: float) -> str | None:
	"""
	Hit-test a canvas point.

	Args:
		template: Template snapshot.
		x: Horizontal position in inches.
		y: Vertical position in inches.

	Returns:
		Id of the topmost leaf element under the point, or None.
	"""
	layout = bls.layout.resolve_layout(template, DISPLAY_DPI)
	hit: str | None = None
	for node in layout.iter_nodes():
		if isinstance(node.element, GroupElement) or not node.visible:
			continue
		if bls.geometry.point_in_box(x, y, node.frame):
			hit = node.element_id
	return hit
