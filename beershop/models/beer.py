"""ORM model for beers offered by the shop."""

from sqlalchemy import Column, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from beershop.models.associations import beer_users
from beershop.models.base import Base

CURRENCIES = ("USD", "ILS", "EUR")
STOCK_LEVELS = ("plenty", "little", "out")


class Beer(Base):
    """A beer; picture holds only a stored upload's basename, never a path."""

    __tablename__ = "beers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    picture = Column(String(255), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=True)
    stock = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    users = relationship("User", secondary=beer_users, back_populates="beers")
