import io

from PIL import Image, UnidentifiedImageError

from thumbnailer.errors import InvalidImage

# --- OUTPUT SETTINGS ---
QUALITY = 85
PNG_COMPRESSION_LEVEL = 8
# PNG output at quality < 100 is palette-quantized
PNG_PALETTE_COLORS = 256
FLATTEN_BACKGROUND = (255, 255, 255)

DEFAULT_FORMAT = 'jpeg'
SUPPORTED_FORMATS = ('jpeg', 'jpg', 'png', 'webp')

# Pillow format names that libvips would report differently
FORMAT_ALIASES = {'mpo': 'jpeg'}

ALPHA_MODES = ('RGBA', 'RGBa', 'LA', 'La', 'PA')


class SourceImage:
    """A decoded original plus the metadata the pipeline branches on."""

    def __init__(self, image, format, has_alpha, size):
        self.image = image
        self.format = format
        self.has_alpha = has_alpha
        self.size = size


def detect_format(image):
    name = (image.format or '').lower()
    return FORMAT_ALIASES.get(name, name)


def has_alpha(image):
    return image.mode in ALPHA_MODES or 'transparency' in image.info


def decode_image(data):
    try:
        image = Image.open(io.BytesIO(data))
        # Image.open is lazy; load() surfaces truncated or corrupt data here
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise InvalidImage() from e

    return SourceImage(image, detect_format(image), has_alpha(image), len(data))


def resolve_output_format(requested, source_format):
    """Map a requested and a detected format onto one of jpeg, png or webp."""
    candidate = (requested or '').lower() or (source_format or '').lower()
    if candidate not in SUPPORTED_FORMATS:
        candidate = DEFAULT_FORMAT
    if candidate == 'jpg':
        candidate = 'jpeg'
    return candidate


def fit_inside(size, box):
    """Largest size with the same aspect ratio that fits in ``box``.

    Scales up as well as down; neither side drops below one pixel.
    """
    src_w, src_h = size
    box_w, box_h = box
    scale = min(box_w / src_w, box_h / src_h)
    return (
        min(box_w, max(1, round(src_w * scale))),
        min(box_h, max(1, round(src_h * scale))),
    )


def flatten(image, background=FLATTEN_BACKGROUND):
    """Composite an RGBA image onto an opaque background."""
    canvas = Image.new('RGB', image.size, background)
    canvas.paste(image, mask=image.getchannel('A'))
    return canvas


def to_eight_bit(image):
    """Scale high bit-depth greyscale (I;16, I, F) down to an 8-bit L image.

    A plain convert() clips these values at 255 instead of scaling them.
    """
    if image.mode.startswith('I;16'):
        image = image.convert('I')
    if image.mode == 'I':
        return image.point(lambda v: v * (1 / 256)).convert('L')
    if image.mode == 'F':
        _, high = image.getextrema()
        if high <= 1.0:
            scale = 255.0
        elif high <= 255:
            scale = 1.0
        else:
            scale = 1 / 256
        return image.point(lambda v: v * scale).convert('L')
    return image


def to_palette(image):
    """Quantize to a 256-colour palette, keeping alpha for RGBA input."""
    return image.quantize(colors=PNG_PALETTE_COLORS, method=Image.Quantize.FASTOCTREE)


def render_thumbnail(source, width, height, output_format):
    image = to_eight_bit(source.image)

    # 1. Normalise the mode so every encoder accepts it and resampling is smooth
    mode = 'RGBA' if source.has_alpha else 'RGB'
    if image.mode != mode:
        image = image.convert(mode)

    # 2. Fit inside the requested box
    image = image.resize(fit_inside(image.size, (width, height)), Image.Resampling.LANCZOS)

    # 3. Encode
    buf = io.BytesIO()
    if output_format == 'png':
        to_palette(image).save(buf, format='PNG', compress_level=PNG_COMPRESSION_LEVEL)
    elif output_format == 'webp':
        image.save(buf, format='WEBP', quality=QUALITY)
    else:
        # JPEG has no alpha channel
        if image.mode == 'RGBA':
            image = flatten(image)
        image.save(buf, format='JPEG', quality=QUALITY, progressive=True)
    return buf.getvalue()
