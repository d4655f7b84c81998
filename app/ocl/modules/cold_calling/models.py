from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.ocl.models import Base
from app.ocl.utils import isoformat


class ColdCallingRow(Base):
    __tablename__ = "cold_calling_rows"
    __table_args__ = (
        Index("idx_cold_calling_tab", "tab_name"),
        Index("idx_cold_calling_tab_row", "tab_name", "row_number"),
        Index("idx_cold_calling_tab_created", "tab_name", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    tab_name: Mapped[str] = mapped_column(String(128), nullable=False)

    # Spreadsheet columns
    concern_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    destination: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    phone1: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    phone2: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    sujata: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    follow_up_date: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    rating: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    broadcast: Mapped[str] = mapped_column(String(8), nullable=False, default="")  # YES, NO, ""
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="")  # done, pending, notWorking, ""

    row_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    background_color: Mapped[str] = mapped_column(String(32), nullable=False, default="")  # Excel colour coding

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tabName": self.tab_name,
            "concernName": self.concern_name,
            "companyName": self.company_name,
            "destination": self.destination,
            "phone1": self.phone1,
            "phone2": self.phone2,
            "sujata": self.sujata,
            "followUpDate": self.follow_up_date,
            "rating": self.rating,
            "broadcast": self.broadcast,
            "status": self.status,
            "rowNumber": self.row_number,
            "backgroundColor": self.background_color,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
