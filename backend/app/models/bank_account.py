from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, func, ForeignKey, String, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.services.bank_account_state import BankAccountState, VERIFY, transition
from app.services.bank_account_types import CountryBankAccount, rules_for_type


class BankAccount(Base):
    """One payout bank account. ``type`` selects the country rules."""

    __tablename__ = "bank_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(64), default="AchAccount", index=True)

    bank_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    branch_code: Mapped[str | None] = mapped_column(String(64), nullable=True)

    account_number: Mapped[bytes] = mapped_column(LargeBinary)
    account_number_last_four: Mapped[str | None] = mapped_column(String(4), nullable=True)
    account_number_fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    account_holder_full_name: Mapped[str] = mapped_column(String(255))
    account_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)

    state: Mapped[str] = mapped_column(String(16), default=BankAccountState.UNVERIFIED.value)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bank_accounts")
    payouts = relationship("Payout", back_populates="bank_account")

    def __repr__(self) -> str:
        return f"<BankAccount id={self.id} type={self.type} last_four={self.account_number_last_four}>"

    @classmethod
    def alive_clause(cls):
        return cls.deleted_at.is_(None)

    @property
    def alive(self) -> bool:
        return self.deleted_at is None

    @property
    def verified(self) -> bool:
        return self.state == BankAccountState.VERIFIED.value

    @property
    def rules(self):
        return rules_for_type(self.type)

    def identifiers(self) -> dict[str, str | None]:
        return {f.name: getattr(self, f.column) for f in self.rules.fields}

    def to_country_account(self, bank_name: str | None = None) -> CountryBankAccount:
        return CountryBankAccount(
            rules=self.rules,
            identifiers=self.identifiers(),
            account_number_last_four=self.account_number_last_four,
            account_holder_full_name=self.account_holder_full_name,
            account_type=self.account_type,
            country_code=self.country,
            bank_name=bank_name,
        )

    @property
    def routing_number(self) -> str | None:
        return self.to_country_account().routing_number

    @property
    def bank_account_type(self) -> str:
        return self.rules.bank_account_type

    @property
    def currency(self) -> str:
        return self.rules.currency

    @property
    def account_number_visual(self) -> str:
        return self.to_country_account().account_number_visual

    def to_canonical_hash(self, bank_name: str | None = None) -> dict:
        return self.to_country_account(bank_name=bank_name).to_canonical_hash()

    def mark_deleted(self) -> None:
        if self.deleted_at is None:
            self.deleted_at = datetime.now(timezone.utc).replace(tzinfo=None)

    def mark_verified(self) -> None:
        self.state = transition(self.state, VERIFY).value
