"""Pydantic models for the routing backend (OpenTripPlanner planConnection) response."""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Mode(str, Enum):
    AIRPLANE = "AIRPLANE"
    BICYCLE = "BICYCLE"
    BUS = "BUS"
    CABLE_CAR = "CABLE_CAR"
    CAR = "CAR"
    CARPOOL = "CARPOOL"
    COACH = "COACH"
    FERRY = "FERRY"
    FLEX = "FLEX"
    FUNICULAR = "FUNICULAR"
    GONDOLA = "GONDOLA"
    MONORAIL = "MONORAIL"
    RAIL = "RAIL"
    SCOOTER = "SCOOTER"
    SUBWAY = "SUBWAY"
    TAXI = "TAXI"
    TRAM = "TRAM"
    TRANSIT = "TRANSIT"
    TROLLEYBUS = "TROLLEYBUS"
    WALK = "WALK"


class _Model(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Stop(_Model):
    platform_code: str | None = Field(default=None, alias="platformCode")
    vehicle_mode: str | None = Field(default=None, alias="vehicleMode")


class Place(_Model):
    name: str | None = None
    lat: float
    lon: float
    stop: Stop | None = None


class LegTime(_Model):
    scheduled_time: datetime = Field(alias="scheduledTime")


class LegGeometry(_Model):
    points: str


class LegRoute(_Model):
    desc: str | None = None
    short_name: str | None = Field(default=None, alias="shortName")


class Leg(_Model):
    """One mode-homogeneous movement within an itinerary."""

    id: str | None = None
    mode: Mode
    from_: Place = Field(alias="from")
    to: Place
    start: LegTime
    end: LegTime
    distance: float
    leg_geometry: LegGeometry = Field(alias="legGeometry")
    route: LegRoute | None = None

    @model_validator(mode="after")
    def check_times(self):
        if self.start.scheduled_time > self.end.scheduled_time:
            raise ValueError("leg ends before it starts")
        return self


# An itinerary: non-empty, chronologically ordered legs
Route = list[Leg]


class _Node(_Model):
    legs: list[Leg] = Field(min_length=1)


class _Edge(_Model):
    node: _Node


class _PlanConnection(_Model):
    edges: list[_Edge]


class _PlanData(_Model):
    plan_connection: _PlanConnection = Field(alias="planConnection")


class PlanConnectionResponse(_Model):
    data: _PlanData

    def routes(self) -> list[Route]:
        return [list(edge.node.legs) for edge in self.data.plan_connection.edges]
