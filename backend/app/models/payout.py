from sqlalchemy import Integer, DateTime, func, ForeignKey, String, BigInteger
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base

class Payout(Base):
    __tablename__ = "payouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    # no cascade: soft-deleting a bank account leaves its payout history intact
    bank_account_id: Mapped[int | None] = mapped_column(ForeignKey("bank_accounts.id"), nullable=True, index=True)

    amount_cents: Mapped[int] = mapped_column(BigInteger)
    currency: Mapped[str] = mapped_column(String(3))
    state: Mapped[str] = mapped_column(String(16), default="processing")

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())

    bank_account = relationship("BankAccount", back_populates="payouts")
