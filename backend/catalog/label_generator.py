"""
Local label sheet renderer
Uses PIL/Pillow and python-barcode to draw Code128 labels into a multi-page PDF
"""
import io
import logging

import barcode
from barcode.writer import ImageWriter
from django.conf import settings
from PIL import Image, ImageDraw, ImageFont

from .labels import PAGE_HEIGHT_PT, PAGE_WIDTH_PT, POINTS_PER_INCH, LabelSheet, layout_labels, parse_label_size

logger = logging.getLogger(__name__)

# Offsets inside a label, in points from its top-left corner
TEXT_OFFSET = (5, 5)
BARCODE_OFFSET = (10, 30)
BARCODE_HEIGHT = 60


def load_font(size):
    """Try to use a nice font, fallback to default if not available"""
    try:
        return ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', size)
    except (OSError, IOError):
        try:
            # Try Arial on Windows/Mac
            return ImageFont.truetype('arial.ttf', size)
        except (OSError, IOError):
            return ImageFont.load_default()


def render_barcode(value, width, height):
    """Code128 barcode image scaled to width x height pixels"""
    code128 = barcode.get_barcode_class('code128')
    barcode_img = code128(value, writer=ImageWriter()).render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 20.0,
        'quiet_zone': 2.0,
        'font_size': 0,
        'text_distance': 0,
        'background': 'white',
        'foreground': 'black',
    })
    # BILINEAR is fast and good enough for bars
    return barcode_img.convert('RGB').resize((width, height), Image.Resampling.BILINEAR)


def draw_label(page_img, label, scale, include_id=True, font=None):
    """Draw one placed label onto a page image"""
    draw = ImageDraw.Draw(page_img)
    font = font or load_font(max(int(10 * scale), 8))

    # PDF y is the label's bottom edge from the page bottom
    left = int(label.x * scale)
    top = int((PAGE_HEIGHT_PT - label.y - label.height) * scale)
    width = int(label.width * scale)
    height = int(label.height * scale)
    draw.rectangle([left, top, left + width, top + height], outline='black', width=max(int(scale), 1))

    if include_id:
        draw.text((left + int(TEXT_OFFSET[0] * scale), top + int(TEXT_OFFSET[1] * scale)),
                  label.barcode, fill='black', font=font)

    barcode_top = int(BARCODE_OFFSET[1] * scale)
    barcode_height = min(int(BARCODE_HEIGHT * scale), height - barcode_top - int(5 * scale))
    barcode_width = width - int(2 * BARCODE_OFFSET[0] * scale)
    if barcode_height <= 0 or barcode_width <= 0:
        logger.warning(f"Label too small for a barcode: {label.barcode}")
        return

    try:
        barcode_img = render_barcode(label.barcode, barcode_width, barcode_height)
        page_img.paste(barcode_img, (left + int(BARCODE_OFFSET[0] * scale), top + barcode_top))
        barcode_img.close()
    except Exception as e:
        # If barcode generation fails, log error and draw text barcode value
        logger.error(f"Barcode generation failed for '{label.barcode}': {str(e)}")
        draw.text((left + int(BARCODE_OFFSET[0] * scale), top + barcode_top),
                  f'BARCODE: {label.barcode}', fill='black', font=font)


def render_label_sheet_pdf(items, label_size='4x1.5', include_id=True, dpi=None):
    """
    Render items as a multi-page US-Letter PDF of Code128 labels.

    Args:
        items: Dicts or objects with ``barcode`` (and optional ``description``)
        label_size: Label size in inches, e.g. '4x1.5'
        include_id: Print the barcode value above the bars
        dpi: Raster resolution (defaults to settings.LABEL_DPI)

    Returns:
        PDF file content as bytes

    Raises:
        ValueError: invalid label size, or nothing to print
    """
    width_in, height_in = parse_label_size(label_size)
    pages = layout_labels(items, LabelSheet(label_width_in=width_in, label_height_in=height_in))
    if not pages:
        raise ValueError("No labels to print. Select at least one component with a barcode.")

    dpi = dpi or getattr(settings, 'LABEL_DPI', 150)
    scale = dpi / POINTS_PER_INCH
    page_size = (int(PAGE_WIDTH_PT * scale), int(PAGE_HEIGHT_PT * scale))
    font = load_font(max(int(10 * scale), 8))

    images = []
    for placed in pages:
        page_img = Image.new('RGB', page_size, color='white')
        for label in placed:
            draw_label(page_img, label, scale, include_id=include_id, font=font)
        images.append(page_img)

    buffer = io.BytesIO()
    images[0].save(buffer, format='PDF', save_all=True, append_images=images[1:], resolution=float(dpi))
    for img in images:
        img.close()

    logger.info(f"Rendered {sum(len(p) for p in pages)} labels on {len(pages)} page(s)")
    return buffer.getvalue()
