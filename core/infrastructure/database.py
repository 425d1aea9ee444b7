"""
Database utilities and transaction management.
"""

import contextlib
from typing import Iterator

from django.db import transaction


@contextlib.contextmanager
def unit_of_work() -> Iterator[None]:
    """
    Run the enclosed repository calls in one database transaction.

    Row locks taken with ``find_by_key_for_update`` are held until the
    block exits.

    Usage:
        with unit_of_work():
            # Database operations
            pass
    """
    with transaction.atomic():
        yield
