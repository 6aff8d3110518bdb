"""Key-value entry model backing the plugin's key-value store."""

from __future__ import annotations

from sqlalchemy import Column, LargeBinary, String

from app.db import Base
from app.models.mixins import TimestampMixin


class KVEntry(Base, TimestampMixin):
    """One opaque value stored under a string key.

    Holds linked identities (token encrypted), the GitLab username reverse
    index and the channel subscription map.
    """

    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(LargeBinary, nullable=False)
