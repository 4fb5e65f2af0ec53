"""Threshold configuration used to classify telemetry samples."""

from __future__ import annotations

from dataclasses import dataclass

from settings import Settings, get_settings

FAULT_CODES = ("F104", "E201", "H503")


@dataclass(frozen=True)
class ThresholdPolicy:
    """Bounds that make a sample alert-worthy.

    Temperatures inside ``[temperature_min, temperature_max]`` are in range.
    ``fault_simulation_probability`` enables synthetic system faults for demo
    environments and stays at zero everywhere else.
    """

    temperature_min: float = 18.0
    temperature_max: float = 30.0
    occupancy_max: int = 8
    fault_simulation_probability: float = 0.0

    def __post_init__(self) -> None:
        if self.temperature_min > self.temperature_max:
            raise ValueError(
                "temperature_min must not exceed temperature_max "
                f"({self.temperature_min} > {self.temperature_max})."
            )
        if self.occupancy_max < 0:
            raise ValueError("occupancy_max must be non-negative.")
        if not 0.0 <= self.fault_simulation_probability <= 1.0:
            raise ValueError("fault_simulation_probability must be within [0, 1].")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ThresholdPolicy":
        settings = settings or get_settings()
        return cls(
            temperature_min=settings.temperature_min,
            temperature_max=settings.temperature_max,
            occupancy_max=settings.occupancy_max,
            fault_simulation_probability=settings.fault_simulation_probability,
        )
