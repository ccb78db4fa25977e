"""Pydantic models for place index (Pelias) responses and resolved places."""
from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """A resolved place. `label` is the text the user typed."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float
    label: str


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str


# --- Upstream response schemas (required fields only) ---


class _Geometry(BaseModel):
    coordinates: list[float] = Field(min_length=2)  # [lon, lat]


class SearchFeature(BaseModel):
    geometry: _Geometry


class _Query(BaseModel):
    text: str


class _Geocoding(BaseModel):
    query: _Query


class SearchResponse(BaseModel):
    features: list[SearchFeature]
    geocoding: _Geocoding | None = None


class _AutocompleteProperties(BaseModel):
    id: str
    name: str
    county: str | None = None


class AutocompleteFeature(BaseModel):
    properties: _AutocompleteProperties

    @property
    def display_name(self) -> str:
        p = self.properties
        return f"{p.name}, {p.county}" if p.county else p.name


class AutocompleteResponse(BaseModel):
    features: list[AutocompleteFeature]
