"""
User model

A login belonging to staff, a manufacturer or a client. Manufacturer and
client users point at the party they act for.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from orderhub.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=True)

    # super_admin, admin, order_creator, order_approver, manufacturer, client
    role = Column(String(30), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Party the user acts for (manufacturer / client logins only)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    manufacturer_id = Column(
        Integer, ForeignKey("manufacturers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    client = relationship("Client", back_populates="users")
    manufacturer = relationship("Manufacturer", back_populates="users")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
