from django.db import models


class Location(models.TextChoices):
    """Counting locations. Each maps to one quantity column on Component."""
    MTD = 'MtD', 'MtD'
    FTP = 'FtP', 'FtP'
    HSTD = 'HSTD', 'HSTD'
    TPL = '3PL', '3PL'


QUANTITY_FIELDS = {
    Location.MTD: 'mtd_quantity',
    Location.FTP: 'ftp_quantity',
    Location.HSTD: 'hstd_quantity',
    Location.TPL: 'tpl_quantity',
}

# Weekly high-volume counts only run at HSTD
WEEKLY_COUNT_LOCATION = Location.HSTD

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

WEEKDAY_CHOICES = [(day, day) for day in WEEKDAYS]


def parse_location(value):
    """Return the Location for a raw value, or None if it is not a known location"""
    if isinstance(value, Location):
        return value
    if not value:
        return None
    try:
        return Location(str(value).strip())
    except ValueError:
        return None


def quantity_field_for(location):
    """Name of the Component column holding stock for a location"""
    parsed = parse_location(location)
    if parsed is None:
        raise ValueError(f"Invalid location: {location}. Expected one of: {', '.join(Location.values)}")
    return QUANTITY_FIELDS[parsed]
