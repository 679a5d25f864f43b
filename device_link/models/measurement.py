from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MeasurementType(str, Enum):
    BLOOD_PRESSURE = "blood_pressure"
    HEART_RATE = "heart_rate"
    TEMPERATURE = "temperature"
    SPO2 = "spo2"
    WEIGHT = "weight"


class DeviceType(str, Enum):
    """Device families projected into the live vitals cache."""

    BPM_CONNECT = "BPM_CONNECT"
    THERMO = "THERMO"


class Measurement(BaseModel):
    """A normalised Withings measurement group."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    user_id: str
    measured_at: datetime
    device_id: Optional[str] = None
    device_model: str = Field("Unknown Device", description="Model reported by Withings")
    measurement_type: MeasurementType
    systolic: Optional[int] = Field(None, description="Systolic pressure in mmHg")
    diastolic: Optional[int] = Field(None, description="Diastolic pressure in mmHg")
    heart_rate: Optional[int] = Field(None, description="Heart rate in bpm")
    temperature: Optional[float] = Field(None, description="Temperature in Celsius")
    spo2: Optional[int] = Field(None, description="Blood oxygen saturation in %")
    weight: Optional[float] = Field(None, description="Body weight in kilograms")
    group_id: int = Field(..., description="Withings measurement group id (grpid)")
    natural_key: str = Field(..., description="Deduplication key derived from the group id")


class LiveVitalsEntry(BaseModel):
    """Latest reading for one user and device family."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userId": "7d0c6d1e-5b8e-4ad3-9d0b-0c1f2f8f2a11",
                "deviceType": "BPM_CONNECT",
                "systolicBp": 121,
                "diastolicBp": 79,
                "heartRate": 64,
                "timestamp": "2025-11-14T08:01:06Z",
                "groupId": 5123456789,
            }
        },
    )

    user_id: str
    device_type: DeviceType
    systolic_bp: Optional[int] = None
    diastolic_bp: Optional[int] = None
    heart_rate: Optional[int] = None
    temperature_c: Optional[float] = None
    timestamp: datetime
    group_id: int


__all__ = ["MeasurementType", "DeviceType", "Measurement", "LiveVitalsEntry"]
