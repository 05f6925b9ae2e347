"""
Barcode validation, encoding and drawing.

Symbol patterns come from python-barcode; this module owns the validation
and fallback rules and draws the modules at an arbitrary pixel size.
"""

# Standard Library
import dataclasses
import re

# PIP3 modules
import barcode
import barcode.errors
import PIL.Image
import PIL.ImageDraw

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.config
import barcode_label_studio.drawing
import barcode_label_studio.errors
import barcode_label_studio.geometry


BarcodeError = bls.errors.BarcodeError
PixelBox = bls.geometry.PixelBox

SYMBOLOGIES = bls.config.SYMBOLOGIES
SYMBOLOGY_ALIASES = bls.config.SYMBOLOGY_ALIASES
SAMPLE_BARCODE_VALUES = bls.config.SAMPLE_BARCODE_VALUES
CODE128_MAX_LENGTH = bls.config.CODE128_MAX_LENGTH
BARCODE_ASPECT_RATIO = bls.config.BARCODE_ASPECT_RATIO
BARCODE_TEXT_RESERVE = bls.config.BARCODE_TEXT_RESERVE
BARCODE_FONT_SCALE = bls.config.BARCODE_FONT_SCALE
BARCODE_MIN_FONT_PX = bls.config.BARCODE_MIN_FONT_PX
PLACEHOLDER_FONT_SCALE = bls.config.PLACEHOLDER_FONT_SCALE
PLACEHOLDER_TEXT = bls.config.PLACEHOLDER_TEXT
PLACEHOLDER_COLOR = bls.config.PLACEHOLDER_COLOR

LIBRARY_NAMES = {
	"EAN13": "ean13",
	"CODE128": "code128",
	"CODE39": "code39",
	"UPC_A": "upca",
	"ITF": "itf",
}
DIGITS_PATTERN = re.compile(r"[0-9]+")
CODE39_PATTERN = re.compile(r"[A-Z0-9\-. ]+")
CODE128_PATTERN = re.compile(r"[\x20-\x7e]+")


@dataclasses.dataclass(frozen=True)
class BarcodeSymbol:
	symbology: str
	value: str
	modules: str
	requested: str
	fallback: bool = False


#============================================
def normalize_symbology(name: str | None) -> str | None:
	"""
	Normalize a symbology name.

	Args:
		name: Name like "ean13", "UPC" or "Code128".

	Returns:
		Canonical name from SYMBOLOGIES, or None when unknown.
	"""
	if not name:
		return None
	key = str(name).strip().upper().replace(" ", "").replace("_", "")
	if key == "UPCA":
		return "UPC_A"
	key = SYMBOLOGY_ALIASES.get(key, key)
	if key in SYMBOLOGIES:
		return key
	return None


def sample_value(symbology: str | None) -> str:
	canonical = normalize_symbology(symbology) or bls.config.DEFAULT_SYMBOLOGY
	return SAMPLE_BARCODE_VALUES[canonical]


#============================================
def compute_ean13_check_digit(body: str) -> int:
	"""
	Compute the EAN-13 check digit.

	Weights alternate 1, 3 starting with 1 at position 0.

	Args:
		body: Twelve digits.

	Returns:
		Check digit 0-9.
	"""
	if len(body) != 12 or not DIGITS_PATTERN.fullmatch(body):
		raise BarcodeError(BarcodeError.INVALID_FORMAT, f"EAN-13 body needs 12 digits, got '{body}'")
	total = 0
	for index, char in enumerate(body):
		weight = 1 if index % 2 == 0 else 3
		total += int(char) * weight
	return (10 - total % 10) % 10


def validate_ean13(code: str) -> bool:
	if len(code) != 13 or not DIGITS_PATTERN.fullmatch(code):
		return False
	return compute_ean13_check_digit(code[:12]) == int(code[12])


#============================================
def normalize_ean13(value: str) -> str:
	"""
	Turn an input into a checked 13-digit EAN.

	Shorter inputs are left-padded with zeros to 12 digits, 12 digits get
	a computed check digit, longer inputs are truncated to 13 and checked.

	Args:
		value: Raw value.

	Returns:
		13-digit code.
	"""
	digits = value.strip()
	if not digits:
		raise BarcodeError(BarcodeError.INVALID_FORMAT, "EAN-13 value is empty")
	if not DIGITS_PATTERN.fullmatch(digits):
		raise BarcodeError(BarcodeError.INVALID_CHARACTERS, f"EAN-13 accepts digits only, got '{digits}'")
	if len(digits) > 13:
		digits = digits[:13]
	if len(digits) < 12:
		digits = digits.zfill(12)
	if len(digits) == 12:
		return digits + str(compute_ean13_check_digit(digits))
	if not validate_ean13(digits):
		raise BarcodeError(BarcodeError.CHECKSUM_MISMATCH, f"EAN-13 check digit mismatch in '{digits}'")
	return digits


#============================================
def normalize_upca(value: str) -> str:
	"""
	Check a UPC-A value: exactly 12 digits with a valid check digit.

	Args:
		value: Raw value.

	Returns:
		The 12-digit code.
	"""
	digits = value.strip()
	if len(digits) != 12 or not DIGITS_PATTERN.fullmatch(digits):
		raise BarcodeError(BarcodeError.INVALID_FORMAT, f"UPC-A requires exactly 12 digits, got '{digits}'")
	# UPC-A is an EAN-13 with a leading zero
	if not validate_ean13("0" + digits):
		raise BarcodeError(BarcodeError.INVALID_FORMAT, f"UPC-A check digit mismatch in '{digits}'")
	return digits


#============================================
def normalize_value(value: str, symbology: str) -> str:
	"""
	Validate a value for a symbology.

	Args:
		value: Raw value.
		symbology: Canonical symbology name.

	Returns:
		Value ready for encoding.
	"""
	if symbology == "EAN13":
		return normalize_ean13(value)
	if symbology == "UPC_A":
		return normalize_upca(value)
	if not value:
		raise BarcodeError(BarcodeError.INVALID_FORMAT, f"{symbology} value is empty")
	if symbology == "CODE128":
		if len(value) > CODE128_MAX_LENGTH:
			raise BarcodeError(
				BarcodeError.INVALID_LENGTH,
				f"Code 128 value too long ({len(value)} > {CODE128_MAX_LENGTH})",
			)
		if not CODE128_PATTERN.fullmatch(value):
			raise BarcodeError(BarcodeError.INVALID_CHARACTERS, "Code 128 accepts printable ASCII only")
		return value
	if symbology == "CODE39":
		upper = value.upper()
		if not CODE39_PATTERN.fullmatch(upper):
			raise BarcodeError(
				BarcodeError.INVALID_CHARACTERS,
				"Code 39 supports uppercase letters, numbers, and - . space",
			)
		return upper
	if symbology == "ITF":
		digits = value.strip()
		if not DIGITS_PATTERN.fullmatch(digits):
			raise BarcodeError(BarcodeError.INVALID_CHARACTERS, "ITF accepts digits only")
		# digits are encoded in pairs
		if len(digits) % 2 != 0:
			digits = "0" + digits
		return digits
	raise BarcodeError(BarcodeError.INVALID_FORMAT, f"unknown symbology '{symbology}'")


#============================================
def build_modules(symbology: str, value: str) -> str:
	"""
	Encode a validated value into bar modules.

	Args:
		symbology: Canonical symbology name.
		value: Normalized value.

	Returns:
		Module string, "1" for bar and "0" for space.
	"""
	barcode_class = barcode.get_barcode_class(LIBRARY_NAMES[symbology])
	try:
		if symbology == "EAN13":
			# the library appends the check digit itself
			instance = barcode_class(value[:12])
		elif symbology == "UPC_A":
			instance = barcode_class(value[:11])
		elif symbology == "CODE39":
			instance = barcode_class(value, add_checksum=False)
		else:
			instance = barcode_class(value)
		raw = "".join(instance.build())
	except (barcode.errors.BarcodeError, ValueError) as error:
		raise BarcodeError(BarcodeError.INVALID_FORMAT, f"{symbology} encoding failed: {error}") from error
	return "".join("1" if char in ("1", "G") else "0" for char in raw)


#============================================
def encode(value: str, symbology: str) -> BarcodeSymbol:
	"""
	Validate and encode a value.

	Args:
		value: Raw value.
		symbology: Symbology name, any accepted alias.

	Returns:
		BarcodeSymbol.

	Raises:
		BarcodeError: When the value does not fit the symbology.
	"""
	canonical = normalize_symbology(symbology)
	if canonical is None:
		raise BarcodeError(BarcodeError.INVALID_FORMAT, f"unknown symbology '{symbology}'")
	normalized = normalize_value(str(value), canonical)
	modules = build_modules(canonical, normalized)
	return BarcodeSymbol(symbology=canonical, value=normalized, modules=modules, requested=canonical)


#============================================
def encode_with_fallback(value: str, symbology: str) -> tuple[BarcodeSymbol | None, BarcodeError | None]:
	"""
	Encode a value, applying the documented fallback rules.

	An EAN-13 value that fails validation is re-encoded as Code 128 of
	the raw literal. Other failures yield no symbol.

	Args:
		value: Raw value.
		symbology: Requested symbology.

	Returns:
		Tuple of (symbol or None, error or None).
	"""
	try:
		return (encode(value, symbology), None)
	except BarcodeError as error:
		if normalize_symbology(symbology) != "EAN13":
			return (None, error)
		try:
			symbol = encode(value, "CODE128")
		except BarcodeError:
			return (None, error)
		return (dataclasses.replace(symbol, requested="EAN13", fallback=True), error)


#============================================
def iter_bar_runs(modules: str) -> list[tuple[int, int]]:
	"""
	Find runs of bar modules.

	Args:
		modules: Module string.

	Returns:
		List of (start, end) module indexes, end exclusive.
	"""
	runs: list[tuple[int, int]] = []
	start = None
	for index, char in enumerate(modules):
		if char == "1" and start is None:
			start = index
		elif char != "1" and start is not None:
			runs.append((start, index))
			start = None
	if start is not None:
		runs.append((start, len(modules)))
	return runs


#============================================
def compute_symbol_width(box_width: int, box_height: int) -> int:
	"""
	Width of the drawn symbol: locked aspect ratio, never wider than the box.

	Args:
		box_width: Requested width in pixels.
		box_height: Requested height in pixels.

	Returns:
		Symbol width in pixels.
	"""
	return max(0, min(box_width, bls.geometry.round_half_up(box_height * BARCODE_ASPECT_RATIO)))


#============================================
def compute_module_width(box_width: int, box_height: int, module_count: int) -> int:
	"""
	Whole-pixel width of one module.

	Every bar then spans an exact multiple of this width, so the 1:2:3:4
	bar ratios survive rasterization. Symbols with more modules than the
	available pixels still get 1 pixel per module and are clipped.

	Args:
		box_width: Requested width in pixels.
		box_height: Requested height in pixels.
		module_count: Number of modules in the symbol.

	Returns:
		Module width in pixels, at least 1.
	"""
	if module_count <= 0:
		return 1
	return max(1, compute_symbol_width(box_width, box_height) // module_count)


#============================================
def draw_symbol(
	symbol: BarcodeSymbol,
	width: int,
	height: int,
	display_value: bool,
	color: str = "#000000",
) -> PIL.Image.Image:
	"""
	Draw a symbol into a surface of exactly the requested size.

	Bars span the full height, minus the human readable band when
	display_value is set, and the symbol is centered horizontally.

	Args:
		symbol: Encoded symbol.
		width: Surface width in pixels.
		height: Surface height in pixels.
		display_value: Whether to print the value below the bars.
		color: Bar color.

	Returns:
		RGB image.
	"""
	image = bls.drawing.new_surface(width, height)
	if width <= 0 or height <= 0 or not symbol.modules:
		return image
	fill = bls.drawing.parse_color(color)
	font_px = 0
	text_height = 0
	if display_value:
		font_px = max(BARCODE_MIN_FONT_PX, bls.geometry.round_half_up(height * BARCODE_FONT_SCALE))
		text_height = min(height, max(font_px, bls.geometry.round_half_up(height * BARCODE_TEXT_RESERVE)))
	bar_height = height - text_height

	module_width = compute_module_width(width, height, len(symbol.modules))
	symbol_width = module_width * len(symbol.modules)
	left = (width - symbol_width) // 2
	draw = PIL.ImageDraw.Draw(image)
	if bar_height > 0:
		for start, end in iter_bar_runs(symbol.modules):
			x0 = left + start * module_width
			x1 = left + end * module_width
			# bars past the surface edge are clipped
			x0 = max(0, x0)
			x1 = min(width, x1)
			if x1 > x0:
				draw.rectangle((x0, 0, x1 - 1, bar_height - 1), fill=fill)
	if display_value and text_height > 0:
		font = bls.drawing.load_font(font_px)
		text_box = PixelBox(x=0, y=bar_height, width=width, height=text_height)
		bls.drawing.draw_text_line(image, symbol.value, font, text_box, "center", fill)
	return image


#============================================
def draw_placeholder(width: int, height: int, message: str = PLACEHOLDER_TEXT) -> PIL.Image.Image:
	"""
	Draw the "Invalid Barcode" placeholder box.

	Args:
		width: Surface width in pixels.
		height: Surface height in pixels.
		message: Placeholder text.

	Returns:
		RGB image.
	"""
	image = bls.drawing.new_surface(width, height)
	if width <= 0 or height <= 0:
		return image
	fill = bls.drawing.parse_color(PLACEHOLDER_COLOR)
	draw = PIL.ImageDraw.Draw(image)
	draw.rectangle((0, 0, width - 1, height - 1), outline=fill)
	font_px = max(BARCODE_MIN_FONT_PX, bls.geometry.round_half_up(height * PLACEHOLDER_FONT_SCALE))
	font = bls.drawing.load_font(font_px)
	bls.drawing.draw_text_line(image, message, font, PixelBox(0, 0, width, height), "center", fill)
	return image


#============================================
def generate(
	value: str,
	symbology: str,
	box_width: int,
	box_height: int,
	display_value: bool,
	color: str = "#000000",
) -> PIL.Image.Image:
	"""
	Generate a barcode surface for a value.

	Never raises BarcodeError: invalid input falls back to Code 128 (EAN-13)
	or to the placeholder box.

	Args:
		value: Raw value.
		symbology: Requested symbology.
		box_width: Box width in pixels.
		box_height: Box height in pixels.
		display_value: Whether to print the value below the bars.
		color: Bar color.

	Returns:
		RGB image of exactly box_width x box_height.
	"""
	symbol, _error = encode_with_fallback(value, symbology)
	if symbol is None:
		return draw_placeholder(box_width, box_height)
	return draw_symbol(symbol, box_width, box_height, display_value, color)
