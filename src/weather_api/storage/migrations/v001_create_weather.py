"""Initial schema: the weather table."""

from sqlalchemy import Column, DateTime, Float, Integer, MetaData, String, Table, Text, Uuid
from sqlalchemy.engine import Connection

metadata = MetaData()

weather = Table(
    "weather",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("city", String(120), nullable=False),
    Column("country", String(120), nullable=False),
    Column("temperature", Float, nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("humidity", Integer, nullable=False),
    Column("wind_speed", Float, nullable=False),
    Column("fetched_at", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def up(conn: Connection) -> None:
    weather.create(conn, checkfirst=True)


def down(conn: Connection) -> None:
    weather.drop(conn, checkfirst=True)
