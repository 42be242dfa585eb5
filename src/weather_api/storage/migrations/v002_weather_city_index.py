"""Index backing the latest-by-city lookup."""

from sqlalchemy import Index, MetaData, Table
from sqlalchemy.engine import Connection

INDEX_NAME = "ix_weather_city_fetched_at"


def _index(conn: Connection) -> Index:
    weather = Table("weather", MetaData(), autoload_with=conn)
    return Index(INDEX_NAME, weather.c.city, weather.c.fetched_at)


def up(conn: Connection) -> None:
    _index(conn).create(conn, checkfirst=True)


def down(conn: Connection) -> None:
    _index(conn).drop(conn, checkfirst=True)
