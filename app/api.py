"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import AcknowledgeResponse, Alert, AlertType, Severity, TelemetryIn, TelemetryRecord
from services.alerts import AlertService, build_default_alert_service
from services.telemetry import TelemetryService, build_default_telemetry_service

router = APIRouter()


def get_telemetry_service() -> TelemetryService:
    return build_default_telemetry_service()


def get_alert_service() -> AlertService:
    return build_default_alert_service()


@router.post(
    "/ingest",
    status_code=status.HTTP_201_CREATED,
    response_model=TelemetryRecord,
    summary="Store a telemetry sample and compute the room's HVAC mode.",
)
async def ingest(
    payload: TelemetryIn,
    service: TelemetryService = Depends(get_telemetry_service),
) -> TelemetryRecord:
    return service.ingest(payload)


@router.get(
    "/rooms/latest",
    response_model=List[TelemetryRecord],
    summary="Latest sample for every room.",
)
async def latest_room_data(
    service: TelemetryService = Depends(get_telemetry_service),
) -> List[TelemetryRecord]:
    return service.latest()


@router.get(
    "/rooms/{room_id}/history",
    response_model=List[TelemetryRecord],
    summary="Samples for a room ordered by timestamp.",
)
async def room_history(
    room_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=10_000),
    service: TelemetryService = Depends(get_telemetry_service),
) -> List[TelemetryRecord]:
    return service.history(room_id, limit=limit)


@router.get(
    "/alerts",
    response_model=List[Alert],
    summary="List alerts, newest first.",
)
async def list_alerts(
    room_id: Optional[str] = Query(default=None, alias="roomId"),
    alert_type: Optional[AlertType] = Query(default=None, alias="type"),
    severity: Optional[Severity] = None,
    acknowledged: Optional[bool] = None,
    service: AlertService = Depends(get_alert_service),
) -> List[Alert]:
    return service.list_alerts(
        room_id=room_id,
        alert_type=alert_type,
        severity=severity,
        acknowledged=acknowledged,
    )


@router.post(
    "/alerts/{alert_id}/acknowledge",
    response_model=AcknowledgeResponse,
    summary="Acknowledge an alert.",
)
async def acknowledge_alert(
    alert_id: str,
    service: AlertService = Depends(get_alert_service),
) -> AcknowledgeResponse:
    try:
        alert = service.acknowledge(alert_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id!r} not found.",
        ) from exc
    return AcknowledgeResponse(message="Alert acknowledged successfully", alert=alert)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
