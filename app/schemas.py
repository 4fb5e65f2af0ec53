"""Pydantic schemas for alerts and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from models.records import Mode


class AlertType(str, Enum):
    """Closed set of alert kinds produced by the engine."""

    mode_change = "mode_change"
    system_fault = "system_fault"
    high_occupancy = "high_occupancy"
    temperature_threshold = "temperature_threshold"


class Severity(str, Enum):
    info = "info"
    warning = "warning"
    critical = "critical"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ModeChangeDetails(_CamelModel):
    old_mode: Mode = Field(..., alias="oldMode")
    new_mode: Mode = Field(..., alias="newMode")


class SystemFaultDetails(_CamelModel):
    fault_code: str = Field(..., alias="faultCode")


class HighOccupancyDetails(_CamelModel):
    occupancy: int = Field(..., ge=0)


class TemperatureDetails(_CamelModel):
    temperature: float


class _AlertBase(_CamelModel):
    """Fields common to every alert variant."""

    id: str
    timestamp: datetime
    room_id: str
    severity: Severity
    message: str
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = Field(default=None, alias="acknowledgedAt")

    @model_validator(mode="after")
    def check_acknowledgement(self) -> "_AlertBase":
        if self.acknowledged != (self.acknowledged_at is not None):
            raise ValueError("acknowledged must be true exactly when acknowledgedAt is set")
        return self


class ModeChangeAlert(_AlertBase):
    type: Literal[AlertType.mode_change] = AlertType.mode_change
    details: ModeChangeDetails


class SystemFaultAlert(_AlertBase):
    type: Literal[AlertType.system_fault] = AlertType.system_fault
    details: SystemFaultDetails


class HighOccupancyAlert(_AlertBase):
    type: Literal[AlertType.high_occupancy] = AlertType.high_occupancy
    details: HighOccupancyDetails


class TemperatureThresholdAlert(_AlertBase):
    type: Literal[AlertType.temperature_threshold] = AlertType.temperature_threshold
    details: TemperatureDetails


Alert = Annotated[
    Union[ModeChangeAlert, SystemFaultAlert, HighOccupancyAlert, TemperatureThresholdAlert],
    Field(discriminator="type"),
]

AlertAdapter: TypeAdapter[Alert] = TypeAdapter(Alert)


class TelemetryIn(BaseModel):
    """Sensor payload accepted by the ingestion endpoint."""

    model_config = ConfigDict(allow_inf_nan=False)

    room_id: str = Field(..., min_length=1)
    temperature: float
    humidity: float
    occupancy: int = Field(..., ge=0)
    aqi: float
    timestamp: Optional[datetime] = Field(
        default=None, description="Override for backfills; defaults to the ingestion time."
    )


class TelemetryRecord(BaseModel):
    """Stored telemetry item, keyed by ``(room_id, timestamp)``."""

    model_config = ConfigDict(allow_inf_nan=False)

    room_id: str
    timestamp: str
    temperature: float
    humidity: float
    occupancy: int = Field(..., ge=0)
    aqi: float
    mode: Mode


class AcknowledgeResponse(BaseModel):
    message: str
    alert: Alert
