from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from resource_registry.db.base import Base


class Tenant(Base):
    """
    Tenant directory kept in the master database.

    Owned by the hosting platform; the registry only reads ConnectionString
    values from it and never creates or alters this table outside tests.
    """
    __tablename__ = "Tenants"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)
    name: Mapped[Optional[str]] = mapped_column("Name", String(100), nullable=True)
    connection_string: Mapped[Optional[str]] = mapped_column("ConnectionString", Text, nullable=True)
