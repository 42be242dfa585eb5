"""
SQLAlchemy table mapping for weather records.

The schema itself is owned by the versioned migrations in
weather_api.storage.migrations; this mapping mirrors it for queries.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class WeatherRow(Base):
    __tablename__ = "weather"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    city: Mapped[str] = mapped_column(String(120))
    country: Mapped[str] = mapped_column(String(120))
    temperature: Mapped[float] = mapped_column(Float)
    description: Mapped[str] = mapped_column(Text, default="")
    humidity: Mapped[int] = mapped_column(Integer)
    wind_speed: Mapped[float] = mapped_column(Float)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self):
        return f"<WeatherRow {self.id} {self.city}, {self.country} {self.fetched_at}>"
