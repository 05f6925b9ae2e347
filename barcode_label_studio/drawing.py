"""
Drawing primitives shared by the barcode generator and the rasterizer.
"""

# Standard Library
import functools

# PIP3 modules
import PIL.Image
import PIL.ImageColor
import PIL.ImageDraw
import PIL.ImageFont

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.geometry


PixelBox = bls.geometry.PixelBox

DEFAULT_FONT_REGULAR_FILES = bls.config.DEFAULT_FONT_REGULAR_FILES
DEFAULT_FONT_BOLD_FILES = bls.config.DEFAULT_FONT_BOLD_FILES
BOLD_WEIGHT = bls.config.BOLD_WEIGHT
BACKGROUND_COLOR = bls.config.BACKGROUND_COLOR


#============================================
def parse_color(value: str | None, default: str = "#000000") -> tuple[int, int, int]:
	"""
	Parse a CSS color string into an RGB tuple.

	Args:
		value: Color like "#AABBCC" or "red".
		default: Color used when value is empty or unparseable.

	Returns:
		Tuple of (r, g, b) in 0-255 range.
	"""
	for candidate in (value, default):
		if not candidate:
			continue
		try:
			rgb = PIL.ImageColor.getrgb(candidate)
		except ValueError:
			continue
		return (rgb[0], rgb[1], rgb[2])
	return (0, 0, 0)


#============================================
def parse_font_weight(weight: str | int | None) -> int:
	"""
	Parse a CSS font weight into a number.

	Args:
		weight: Weight like "bold", "normal" or 600.

	Returns:
		Numeric weight.
	"""
	if weight is None:
		return 400
	if isinstance(weight, int):
		return weight
	normalized = str(weight).strip().lower()
	if normalized in ("bold", "bolder"):
		return BOLD_WEIGHT
	if normalized.isdigit():
		return int(normalized)
	return 400


#============================================
def map_font_files(weight: str | int | None) -> tuple[str, ...]:
	"""
	Map a font weight to candidate font files.

	Args:
		weight: CSS font weight.

	Returns:
		Font file names, most preferred first.
	"""
	if parse_font_weight(weight) >= BOLD_WEIGHT:
		return DEFAULT_FONT_BOLD_FILES + DEFAULT_FONT_REGULAR_FILES
	return DEFAULT_FONT_REGULAR_FILES


#============================================
@functools.lru_cache(maxsize=256)
def load_font(size_px: int, weight: str | int | None = None) -> PIL.ImageFont.FreeTypeFont:
	"""
	Load a scalable font at a pixel size.

	Falls back to Pillow's bundled font when no system font is found.

	Args:
		size_px: Font size in device pixels.
		weight: CSS font weight.

	Returns:
		Pillow font object.
	"""
	size_px = max(1, int(size_px))
	for name in map_font_files(weight):
		try:
			return PIL.ImageFont.truetype(name, size_px)
		except OSError:
			continue
	return PIL.ImageFont.load_default(size=size_px)


#============================================
def clip_text(text: str, max_chars: int, align: str) -> str:
	"""
	Drop characters that cannot be visible in a clipped single line.

	Every glyph advances at least one pixel, so a box max_chars pixels
	wide never shows more than max_chars characters.

	Args:
		text: Text to clip.
		max_chars: Upper bound on visible characters.
		align: Text alignment deciding which end stays visible.

	Returns:
		Clipped text.
	"""
	if max_chars <= 0:
		return ""
	if len(text) <= max_chars:
		return text
	if align == "right":
		return text[-max_chars:]
	if align == "center":
		start = (len(text) - max_chars) // 2
		return text[start:start + max_chars]
	return text[:max_chars]


#============================================
def draw_text_line(
	image: PIL.Image.Image,
	text: str,
	font: PIL.ImageFont.FreeTypeFont,
	box: PixelBox,
	align: str,
	fill: tuple[int, int, int],
	padding: float = 0.0,
) -> None:
	"""
	Draw one line of text vertically centered in a box, clipped to it.

	Args:
		image: Target image.
		text: Text to draw; newlines are drawn as spaces.
		font: Pillow font.
		box: Target box in image pixels.
		align: "left", "center" or "right".
		fill: RGB text color.
		padding: Horizontal inset for left and right alignment.
	"""
	if box.width <= 0 or box.height <= 0 or not text:
		return
	line = " ".join(text.splitlines())
	line = clip_text(line, box.width + 1, align)
	layer = PIL.Image.new("L", (box.width, box.height), 0)
	draw = PIL.ImageDraw.Draw(layer)
	text_width = draw.textlength(line, font=font)
	ascent, descent = font.getmetrics()
	if align == "center":
		text_x = (box.width - text_width) / 2.0
	elif align == "right":
		text_x = box.width - padding - text_width
	else:
		text_x = padding
	text_y = (box.height - (ascent + descent)) / 2.0
	draw.text((text_x, text_y), line, font=font, fill=255)
	image.paste(fill, (box.x, box.y, box.x + box.width, box.y + box.height), mask=layer)


def new_surface(width: int, height: int, background: str = BACKGROUND_COLOR) -> PIL.Image.Image:
	return PIL.Image.new("RGB", (max(1, width), max(1, height)), parse_color(background, BACKGROUND_COLOR))
