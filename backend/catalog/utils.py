"""
Utility functions for catalog operations
"""
import logging

from django.db import transaction

from backend.catalog.models import Component
from backend.locations.models import parse_location

logger = logging.getLogger(__name__)


def find_duplicate_barcodes(rows):
    """Barcodes that appear more than once in a batch, in first-repeat order"""
    seen = set()
    duplicates = []
    for row in rows:
        barcode = str(row.get('barcode') or '').strip()
        if not barcode:
            continue
        if barcode in seen and barcode not in duplicates:
            duplicates.append(barcode)
        seen.add(barcode)
    return duplicates


def import_components(rows, location=None):
    """
    Upsert parsed component rows.

    Each row is ``{barcode, description?, quantity?}``. The first row for a
    barcode is imported and later repeats are reported as duplicates. When a
    quantity is given it is stored at ``location``; totals are recomputed on save.

    Returns:
        dict with created, updated, duplicates and skipped (rows without a barcode)
    """
    parsed_location = parse_location(location) if location else None
    if location and parsed_location is None:
        raise ValueError(f"Invalid location: {location}")

    seen = set()
    duplicates = []
    created = []
    updated = []
    skipped = 0

    with transaction.atomic():
        for row in rows:
            barcode = str(row.get('barcode') or '').strip()
            if not barcode:
                skipped += 1
                continue
            if barcode in seen:
                if barcode not in duplicates:
                    duplicates.append(barcode)
                continue
            seen.add(barcode)

            component, was_created = Component.objects.get_or_create(
                barcode=barcode,
                defaults={'description': row.get('description') or ''}
            )
            if not was_created and row.get('description'):
                component.description = row['description']

            quantity = row.get('quantity')
            if quantity is not None:
                if parsed_location is None:
                    raise ValueError("A location is required to import quantities.")
                component.set_quantity_at(parsed_location, int(quantity))
            component.save()

            (created if was_created else updated).append(barcode)

    logger.info(
        f"Imported components: {len(created)} created, {len(updated)} updated, "
        f"{len(duplicates)} duplicates, {skipped} skipped"
    )
    return {
        'created': created,
        'updated': updated,
        'duplicates': duplicates,
        'skipped': skipped,
    }
