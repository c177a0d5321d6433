"""
Models Package

SQLAlchemy models of the local store are imported here so they are
registered with Base.metadata before tables are created. The remaining
modules hold pydantic DTOs mirroring the commerce service payloads.
"""

from models.base import Base
from models.local_setting import LocalSetting
