from sqlalchemy import Column, String, DateTime, func

from models.base import Base


class LocalSetting(Base):
    """
    Key-value store for client-side state that must survive a restart.

    Only degraded-mode hints live here, never authoritative data.

    Examples:
        - profile_complete: "true", "false"
        - seller_profile_complete: "true", "false"
    """
    __tablename__ = 'local_settings'

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
