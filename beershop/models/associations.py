"""Association tables."""

from sqlalchemy import Column, ForeignKey, Integer, Table

from beershop.models.base import Base

# Which users love which beers.
beer_users = Table(
    "beer_users",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("beer_id", Integer, ForeignKey("beers.id", ondelete="CASCADE"), primary_key=True),
)
