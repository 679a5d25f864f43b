"""Translate raw Withings measure groups into typed measurements.

Reference: https://developer.withings.com/api-reference/#operation/measure-getmeas
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ...models.measurement import DeviceType, LiveVitalsEntry, Measurement, MeasurementType
from ...models.time import from_unix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeasureCode:
    field: str
    measurement_type: MeasurementType
    decimals: Optional[int]  # ``None`` rounds to an integer


MEASURE_CODES: Dict[int, MeasureCode] = {
    1: MeasureCode("weight", MeasurementType.WEIGHT, 2),
    9: MeasureCode("diastolic", MeasurementType.BLOOD_PRESSURE, None),
    10: MeasureCode("systolic", MeasurementType.BLOOD_PRESSURE, None),
    11: MeasureCode("heart_rate", MeasurementType.HEART_RATE, None),
    54: MeasureCode("spo2", MeasurementType.SPO2, None),
    71: MeasureCode("temperature", MeasurementType.TEMPERATURE, 2),
    73: MeasureCode("temperature", MeasurementType.TEMPERATURE, 2),  # skin temperature
}

# A blood pressure cuff reports heart rate in the same group, so the group
# type is decided by the most specific reading present.
TYPE_PRECEDENCE: List[MeasurementType] = [
    MeasurementType.BLOOD_PRESSURE,
    MeasurementType.TEMPERATURE,
    MeasurementType.SPO2,
    MeasurementType.HEART_RATE,
    MeasurementType.WEIGHT,
]

LIVE_DEVICE_TYPES: Dict[MeasurementType, DeviceType] = {
    MeasurementType.BLOOD_PRESSURE: DeviceType.BPM_CONNECT,
    MeasurementType.TEMPERATURE: DeviceType.THERMO,
}

DEVICE_MEASTYPES: Dict[DeviceType, List[int]] = {
    DeviceType.BPM_CONNECT: [9, 10, 11],
    DeviceType.THERMO: [71, 73],
}


def natural_key(group: Mapping[str, Any]) -> str:
    """Deduplication key for a measure group; Withings ``grpid`` is global."""

    return str(group["grpid"])


def _scaled(measure: Mapping[str, Any], decimals: Optional[int]) -> float | int:
    value = measure["value"] * (10 ** measure.get("unit", 0))
    if decimals is None:
        return int(round(value))
    return round(value, decimals)


def normalise_group(user_id: str, group: Mapping[str, Any]) -> Optional[Measurement]:
    """Return the typed measurement for ``group`` or ``None`` if nothing is recognised."""

    if "grpid" not in group:
        logger.warning("Dropping Withings measure group without grpid: %s", group)
        return None

    fields: Dict[str, Any] = {}
    types_seen: set[MeasurementType] = set()
    for measure in group.get("measures", []):
        code = MEASURE_CODES.get(measure.get("type"))
        if code is None or "value" not in measure:
            continue
        fields[code.field] = _scaled(measure, code.decimals)
        types_seen.add(code.measurement_type)

    if not types_seen:
        return None

    measurement_type = next(kind for kind in TYPE_PRECEDENCE if kind in types_seen)
    return Measurement(
        user_id=user_id,
        measured_at=from_unix(group.get("date", 0)),
        device_id=group.get("deviceid"),
        device_model=group.get("model") or "Unknown Device",
        measurement_type=measurement_type,
        group_id=int(group["grpid"]),
        natural_key=natural_key(group),
        **fields,
    )


def normalise_groups(user_id: str, groups: Iterable[Mapping[str, Any]]) -> List[Measurement]:
    """Normalise every group, dropping unrecognised ones and in-batch duplicates."""

    measurements: Dict[str, Measurement] = {}
    for group in groups:
        measurement = normalise_group(user_id, group)
        if measurement is not None:
            measurements.setdefault(measurement.natural_key, measurement)
    return list(measurements.values())


def is_newer(candidate: Measurement | LiveVitalsEntry, current: Measurement | LiveVitalsEntry) -> bool:
    """Order readings by time; identical timestamps go to the higher group id."""

    candidate_time = candidate.measured_at if isinstance(candidate, Measurement) else candidate.timestamp
    current_time = current.measured_at if isinstance(current, Measurement) else current.timestamp
    if candidate_time != current_time:
        return candidate_time > current_time
    return candidate.group_id > current.group_id


def latest_by_device_type(measurements: Iterable[Measurement]) -> Dict[DeviceType, Measurement]:
    latest: Dict[DeviceType, Measurement] = {}
    for measurement in measurements:
        device_type = LIVE_DEVICE_TYPES.get(measurement.measurement_type)
        if device_type is None:
            continue
        current = latest.get(device_type)
        if current is None or is_newer(measurement, current):
            latest[device_type] = measurement
    return latest


def to_live_entry(device_type: DeviceType, measurement: Measurement) -> LiveVitalsEntry:
    return LiveVitalsEntry(
        user_id=measurement.user_id,
        device_type=device_type,
        systolic_bp=measurement.systolic,
        diastolic_bp=measurement.diastolic,
        heart_rate=measurement.heart_rate,
        temperature_c=measurement.temperature,
        timestamp=measurement.measured_at,
        group_id=measurement.group_id,
    )


__all__ = [
    "MEASURE_CODES",
    "TYPE_PRECEDENCE",
    "LIVE_DEVICE_TYPES",
    "DEVICE_MEASTYPES",
    "natural_key",
    "normalise_group",
    "normalise_groups",
    "is_newer",
    "latest_by_device_type",
    "to_live_entry",
]
