from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.encryption import AccountNumberCipher, account_number_fingerprint
from app.models.bank import Bank
from app.models.bank_account import BankAccount
from app.models.user import User
from app.services.audit import log_event
from app.services.bank_account_rules import CountryRules
from app.services.bank_account_types import build_input, rules_for_country, rules_for_type
from app.services.bank_account_validation import BankAccountInput, ValidationContext, validate_bank_account

logger = logging.getLogger(__name__)

BANK_ACCOUNT_IN_USE = "This bank account is already in use."


@dataclass
class PayoutMethodResult:
    success: bool
    error: str | None = None
    messages: list[str] = field(default_factory=list)
    bank_account: BankAccount | None = None

    @property
    def data(self) -> str:
        return to_sentence(self.messages)


def to_sentence(items: list[str]) -> str:
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"


def bank_name_lookup(s: Session) -> Callable[[str], str | None]:
    def lookup(routing_number: str) -> str | None:
        return s.execute(select(Bank.name).where(Bank.routing_number == routing_number)).scalar_one_or_none()

    return lookup


def alive_bank_accounts(s: Session, user_id: int) -> list[BankAccount]:
    return (
        s.execute(
            select(BankAccount)
            .where(BankAccount.user_id == user_id, BankAccount.alive_clause())
            .order_by(BankAccount.id.desc())
        )
        .scalars()
        .all()
    )


def active_bank_account(s: Session, user_id: int) -> BankAccount | None:
    """The payout destination: newest alive account, verified or not."""
    accounts = alive_bank_accounts(s, user_id)
    return accounts[0] if accounts else None


def account_fingerprint(acct: BankAccountInput) -> str:
    routing = acct.rules.routing(acct.identifiers) or ""
    return account_number_fingerprint(f"{acct.rules.type_name}:{routing}:{acct.account_number}")


def account_number_in_use(s: Session, type_name: str, fingerprint: str, exclude_user_id: int | None) -> bool:
    """Uniqueness hook. Locks matching rows so concurrent submissions serialize."""
    q = select(BankAccount.id).where(
        BankAccount.type == type_name,
        BankAccount.account_number_fingerprint == fingerprint,
        BankAccount.alive_clause(),
    )
    if exclude_user_id is not None:
        q = q.where(BankAccount.user_id != exclude_user_id)
    return s.execute(q.with_for_update()).first() is not None


def resolve_rules(bank_params: Mapping[str, Any]) -> CountryRules:
    if bank_params.get("type"):
        return rules_for_type(bank_params["type"])
    if bank_params.get("country"):
        return rules_for_country(bank_params["country"])
    return rules_for_type(None, default=settings.default_bank_account_type)


def _strip_account_number(v: str | None) -> str:
    return (v or "").replace("-", "").strip()


class UpdatePayoutMethod:
    def __init__(
        self,
        s: Session,
        user: User,
        params: Mapping[str, Any],
        cipher: AccountNumberCipher | None = None,
        context: ValidationContext | None = None,
        actor: str | None = None,
    ):
        self.s = s
        self.user = user
        self.params = params
        self.cipher = cipher or AccountNumberCipher.from_settings()
        self.context = context or ValidationContext.from_settings(bank_name_lookup(s))
        self.actor = actor or user.username

    def process(self) -> PayoutMethodResult:
        bank = self.params.get("bank_account") or {}
        holder = (bank.get("account_holder_full_name") or "").strip()
        number = _strip_account_number(bank.get("account_number"))
        if not holder and not number:
            return PayoutMethodResult(False, error="bank_account_params_missing")

        rules = resolve_rules(bank)

        if number:
            confirmation = _strip_account_number(bank.get("account_number_confirmation"))
            if number != confirmation:
                return PayoutMethodResult(False, error="account_number_does_not_match")
            return self._replace(rules, bank, number)

        return self._rename(holder)

    def _replace(self, rules: CountryRules, bank: Mapping[str, Any], number: str) -> PayoutMethodResult:
        permitted = {k: bank.get(k) for k in rules.permitted_params()}
        acct = build_input(
            rules,
            permitted,
            account_number=number,
            account_holder_full_name=bank.get("account_holder_full_name"),
            account_type=permitted.get("account_type"),
            country_code=bank.get("country"),
        )

        errors = validate_bank_account(acct, self.context)
        fingerprint = account_fingerprint(acct) if acct.account_number else None
        if not errors and account_number_in_use(self.s, rules.type_name, fingerprint, self.user.id):
            errors.append(BANK_ACCOUNT_IN_USE)

        if errors:
            logger.info("bank account rejected for user %s type=%s errors=%d", self.user.id, rules.type_name, len(errors))
            return PayoutMethodResult(False, error="bank_account_error", messages=errors)

        ciphertext = self.cipher.encrypt_with_public_key(acct.account_number)

        old = active_bank_account(self.s, self.user.id)
        if old is not None:
            old.mark_deleted()
            self.s.add(old)

        row = BankAccount(
            user_id=self.user.id,
            type=rules.type_name,
            account_number=ciphertext,
            account_number_last_four=acct.account_number[-4:],
            account_number_fingerprint=fingerprint,
            account_holder_full_name=acct.account_holder_full_name,
            account_type=acct.account_type,
            country=acct.country_code,
        )
        for f in rules.fields:
            setattr(row, f.column, acct.identifiers.get(f.name))
        self.s.add(row)
        self.s.flush()

        log_event(
            self.s,
            actor=self.actor,
            action="bank_account.create",
            entity_type="bank_account",
            entity_id=row.id,
            owner_user_id=self.user.id,
            details={
                "type": row.type,
                "country": row.country,
                "account_number": row.account_number_visual,
                "replaced_bank_account_id": old.id if old is not None else None,
            },
            commit=False,
        )
        self.s.commit()
        self.s.refresh(row)
        logger.info("bank account %s created for user %s type=%s country=%s", row.id, self.user.id, row.type, row.country)
        return PayoutMethodResult(True, bank_account=row)

    def _rename(self, holder: str) -> PayoutMethodResult:
        row = active_bank_account(self.s, self.user.id)
        if row is None:
            return PayoutMethodResult(False, error="no_active_bank_account")
        before = row.account_holder_full_name
        row.account_holder_full_name = holder
        self.s.add(row)
        log_event(
            self.s,
            actor=self.actor,
            action="bank_account.rename",
            entity_type="bank_account",
            entity_id=row.id,
            owner_user_id=self.user.id,
            details={"before": before, "after": holder},
            commit=False,
        )
        self.s.commit()
        self.s.refresh(row)
        return PayoutMethodResult(True, bank_account=row)


def delete_bank_account(s: Session, row: BankAccount, actor: str) -> BankAccount:
    row.mark_deleted()
    s.add(row)
    log_event(
        s,
        actor=actor,
        action="bank_account.delete",
        entity_type="bank_account",
        entity_id=row.id,
        owner_user_id=row.user_id,
        details={"type": row.type, "account_number": row.account_number_visual},
        commit=False,
    )
    s.commit()
    s.refresh(row)
    logger.info("bank account %s deleted by %s", row.id, actor)
    return row


def delete_all_bank_accounts(s: Session, user_id: int, actor: str) -> int:
    """Account closure: soft-delete every alive account of the user."""
    rows = alive_bank_accounts(s, user_id)
    for row in rows:
        row.mark_deleted()
        s.add(row)
    if rows:
        log_event(
            s,
            actor=actor,
            action="bank_account.delete_all",
            entity_type="user",
            entity_id=user_id,
            owner_user_id=user_id,
            details={"bank_account_ids": [r.id for r in rows]},
            commit=False,
        )
    s.commit()
    return len(rows)


def verify_bank_account(s: Session, row: BankAccount, actor: str) -> BankAccount:
    before = row.state
    row.mark_verified()
    s.add(row)
    log_event(
        s,
        actor=actor,
        action="bank_account.verify",
        entity_type="bank_account",
        entity_id=row.id,
        owner_user_id=row.user_id,
        details={"before": before, "after": row.state},
        commit=False,
    )
    s.commit()
    s.refresh(row)
    logger.info("bank account %s verified by %s", row.id, actor)
    return row


def revalidate(
    row: BankAccount,
    cipher: AccountNumberCipher,
    passphrase: str,
    context: ValidationContext | None = None,
) -> list[str]:
    """Re-run the country rules against a stored account without changing it."""
    acct = build_input(
        row.rules,
        row.identifiers(),
        account_number=cipher.decrypt(row.account_number, passphrase),
        account_holder_full_name=row.account_holder_full_name,
        account_type=row.account_type,
        country_code=row.country,
    )
    return validate_bank_account(acct, context or ValidationContext.from_settings())
