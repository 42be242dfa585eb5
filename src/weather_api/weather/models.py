"""Data models for the weather storage service."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WeatherRecord(CamelModel):
    """Stored weather reading for a city."""
    id: UUID = Field(..., description="Unique record identifier")
    city: str = Field(..., min_length=1, description="City name")
    country: str = Field(..., min_length=1, description="Country code or name")
    temperature: float = Field(..., description="Temperature in Celsius")
    description: str = Field("", description="Provider weather description")
    humidity: int = Field(..., ge=0, le=100, description="Relative humidity in percent")
    wind_speed: float = Field(..., ge=0, description="Wind speed in m/s")
    fetched_at: datetime = Field(..., description="Time the provider produced the reading")
    created_at: datetime = Field(..., description="Time the record was stored")
    updated_at: datetime = Field(..., description="Time the record was last changed")


class WeatherReading(BaseModel):
    """Normalized reading returned by the weather API client."""
    temperature: float
    description: str
    humidity: int
    wind_speed: float
    fetched_at: datetime


class FetchWeatherRequest(BaseModel):
    """Request body for fetching and storing weather."""
    model_config = ConfigDict(str_strip_whitespace=True)

    city: str = Field(..., min_length=1, description="City name")
    country: str = Field(..., min_length=2, description="Country code (e.g. IR) or name")


class WeatherUpdate(CamelModel):
    """Partial update; empty strings and zero numbers leave the stored value alone."""
    model_config = ConfigDict(str_strip_whitespace=True)

    city: Optional[str] = Field(None, description="New city name")
    country: Optional[str] = Field(None, description="New country code or name")
    temperature: Optional[float] = Field(None, description="Temperature in Celsius")
    description: Optional[str] = Field(None, description="Weather description")
    humidity: Optional[int] = Field(None, ge=0, le=100, description="Relative humidity in percent")
    wind_speed: Optional[float] = Field(None, ge=0, description="Wind speed in m/s")


class OpenWeatherMain(BaseModel):
    """'main' block of the OpenWeatherMap /weather response."""
    temp: float
    humidity: int


class OpenWeatherCondition(BaseModel):
    """Entry of the 'weather' list in the OpenWeatherMap response."""
    description: str


class OpenWeatherWind(BaseModel):
    """'wind' block of the OpenWeatherMap response."""
    speed: float = 0.0


class OpenWeatherResponse(BaseModel):
    """Raw response from the OpenWeatherMap current weather API."""
    main: OpenWeatherMain
    weather: List[OpenWeatherCondition] = Field(default_factory=list)
    wind: OpenWeatherWind = Field(default_factory=OpenWeatherWind)
    dt: int = Field(..., description="Reading time as unix seconds")


class MessageResponse(BaseModel):
    """Plain message response."""
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    components: Dict[str, str]
    version: str


class ErrorResponse(BaseModel):
    """Error response model."""
    code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, str]] = Field(None, description="Field validation details")
