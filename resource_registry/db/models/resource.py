from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, false, func, text, true
from sqlalchemy.orm import Mapped, mapped_column

from resource_registry.db.base import Base


DEFAULT_APP_NAME = "ReportWriter"


class Resource(Base):
    """
    Navigation/menu entry scoped to an owning application (AppName).

    Column names are the persisted (CamelCase) names shared with other clients
    of the same database; attributes are snake_case.
    """
    __tablename__ = "Resources"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)
    alias: Mapped[Optional[str]] = mapped_column("Alias", String(50), nullable=True)
    route: Mapped[Optional[str]] = mapped_column("Route", String(255), nullable=True)
    title: Mapped[Optional[str]] = mapped_column("Title", String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column("Description", String(200), nullable=True)
    sysop_user_id: Mapped[Optional[str]] = mapped_column("SysopUserId", String(50), nullable=True)
    is_public: Mapped[Optional[bool]] = mapped_column("IsPublic", Boolean, nullable=True, server_default=true())
    group_name: Mapped[Optional[str]] = mapped_column("GroupName", String(50), nullable=True)
    group_order: Mapped[Optional[int]] = mapped_column("GroupOrder", Integer, nullable=True, server_default=text("0"))
    display_order: Mapped[Optional[int]] = mapped_column("DisplayOrder", Integer, nullable=True, server_default=text("0"))
    mail_enable: Mapped[Optional[bool]] = mapped_column("MailEnable", Boolean, nullable=True, server_default=false())  # inert
    show_list: Mapped[Optional[bool]] = mapped_column("ShowList", Boolean, nullable=True, server_default=true())
    main_show_list: Mapped[Optional[bool]] = mapped_column("MainShowList", Boolean, nullable=True, server_default=true())
    header_html: Mapped[Optional[str]] = mapped_column("HeaderHtml", Text, nullable=True)
    footer_html: Mapped[Optional[str]] = mapped_column("FooterHtml", Text, nullable=True)
    app_name: Mapped[Optional[str]] = mapped_column(
        "AppName", String(100), nullable=True, server_default=DEFAULT_APP_NAME
    )
    step: Mapped[Optional[int]] = mapped_column("Step", Integer, nullable=True, server_default=text("0"))

    # Audit
    created_by: Mapped[Optional[str]] = mapped_column("CreatedBy", String(255), nullable=True)
    created: Mapped[Optional[datetime]] = mapped_column(
        "Created", DateTime(timezone=True), nullable=True, server_default=func.now()
    )
    modified_by: Mapped[Optional[str]] = mapped_column("ModifiedBy", String(255), nullable=True)
    modified: Mapped[Optional[datetime]] = mapped_column("Modified", DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Resource id={self.id} alias={self.alias!r} app={self.app_name!r} order={self.display_order}>"
