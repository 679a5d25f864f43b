"""Withings payload normalisation."""

from .normalization import (
    DEVICE_MEASTYPES,
    MEASURE_CODES,
    is_newer,
    latest_by_device_type,
    normalise_group,
    normalise_groups,
    to_live_entry,
)

__all__ = [
    "DEVICE_MEASTYPES",
    "MEASURE_CODES",
    "is_newer",
    "latest_by_device_type",
    "normalise_group",
    "normalise_groups",
    "to_live_entry",
]
