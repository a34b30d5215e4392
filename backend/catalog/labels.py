"""
Label sheet layout for US-Letter pages.

Coordinates are PDF points (1/72 inch) with the origin at the bottom-left
corner of the page, so ``y`` is the bottom edge of a label.
"""
from dataclasses import dataclass
from typing import List, Optional

POINTS_PER_INCH = 72
PAGE_WIDTH_PT = 612
PAGE_HEIGHT_PT = 792

DEFAULT_LABEL_SIZE = '4x1.5'


@dataclass(frozen=True)
class LabelSheet:
    label_width_in: float = 4
    label_height_in: float = 1.5
    columns: int = 2
    rows: int = 6
    left_margin_in: float = 0.25
    top_margin_in: float = 1

    @property
    def label_width(self):
        return self.label_width_in * POINTS_PER_INCH

    @property
    def label_height(self):
        return self.label_height_in * POINTS_PER_INCH

    @property
    def left_margin(self):
        return self.left_margin_in * POINTS_PER_INCH

    @property
    def top_margin(self):
        return self.top_margin_in * POINTS_PER_INCH

    @property
    def per_page(self):
        return self.columns * self.rows

    def check_fits(self):
        if self.label_width_in <= 0 or self.label_height_in <= 0:
            raise ValueError("Label width and height must be positive.")
        if self.left_margin + self.columns * self.label_width > PAGE_WIDTH_PT:
            raise ValueError(f"{self.columns} labels of {self.label_width_in}in do not fit across a US Letter page.")
        if self.top_margin + self.rows * self.label_height > PAGE_HEIGHT_PT:
            raise ValueError(f"{self.rows} rows of {self.label_height_in}in labels do not fit on a US Letter page.")


@dataclass(frozen=True)
class PlacedLabel:
    page: int
    row: int
    column: int
    x: float
    y: float
    width: float
    height: float
    barcode: str
    text: str = ''


def parse_label_size(value):
    """Parse a size like ``4x1.5`` (inches) into (width, height)"""
    parts = str(value or '').lower().replace(' ', '').split('x')
    if len(parts) != 2:
        raise ValueError(f"Invalid label size: {value}. Expected WIDTHxHEIGHT in inches, e.g. 4x1.5")
    try:
        width, height = float(parts[0]), float(parts[1])
    except ValueError:
        raise ValueError(f"Invalid label size: {value}. Expected WIDTHxHEIGHT in inches, e.g. 4x1.5")
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid label size: {value}. Width and height must be positive.")
    return width, height


def _item_value(item, key):
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def layout_labels(items, sheet: Optional[LabelSheet] = None) -> List[List[PlacedLabel]]:
    """
    Place one label per item, filling each row left to right and pages top to bottom.

    Items are dicts or objects with ``barcode`` and optional ``description``.
    Items without a barcode are skipped and take no slot.
    """
    sheet = sheet or LabelSheet()
    sheet.check_fits()

    pages = []
    slot = 0
    for item in items:
        barcode = _item_value(item, 'barcode')
        if barcode is None or not str(barcode).strip():
            continue
        page, position = divmod(slot, sheet.per_page)
        row, column = divmod(position, sheet.columns)
        if page == len(pages):
            pages.append([])
        pages[page].append(PlacedLabel(
            page=page,
            row=row,
            column=column,
            x=sheet.left_margin + column * sheet.label_width,
            y=PAGE_HEIGHT_PT - sheet.top_margin - (row + 1) * sheet.label_height,
            width=sheet.label_width,
            height=sheet.label_height,
            barcode=str(barcode).strip(),
            text=_item_value(item, 'description') or '',
        ))
        slot += 1
    return pages
