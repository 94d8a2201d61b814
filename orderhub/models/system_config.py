"""
System configuration key/value rows (margins and other admin-editable settings)
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from orderhub.db.base import Base


class SystemConfig(Base):
    __tablename__ = "system_config"

    id = Column(Integer, primary_key=True, index=True)
    config_key = Column(String(100), unique=True, nullable=False, index=True)
    config_value = Column(String(255), nullable=True)
    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<SystemConfig {self.config_key}={self.config_value}>"
