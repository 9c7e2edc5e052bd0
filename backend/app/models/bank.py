from sqlalchemy import String, Integer, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

class Bank(Base):
    """Routing directory: one row per known US routing number."""

    __tablename__ = "banks"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    routing_number: Mapped[str] = mapped_column(String(9), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(128))
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
