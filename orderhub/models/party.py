"""
Client and Manufacturer models

The two external parties an order is placed between. Clients may carry
their own margin percentages that override the system defaults.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from orderhub.db.base import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, index=True)

    # Per-client overrides of system_config margins (NULL = use default)
    custom_margin_percentage = Column(Numeric(6, 2), nullable=True)
    custom_sample_margin_percentage = Column(Numeric(6, 2), nullable=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    users = relationship("User", back_populates="client")
    orders = relationship("Order", back_populates="client")

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}')>"


class Manufacturer(Base):
    __tablename__ = "manufacturers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, index=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    users = relationship("User", back_populates="manufacturer")
    orders = relationship("Order", back_populates="manufacturer")

    def __repr__(self):
        return f"<Manufacturer(id={self.id}, name='{self.name}')>"
