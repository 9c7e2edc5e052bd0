from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.bank_account import BankAccount
from app.services.payout_method import active_bank_account, bank_name_lookup


def _bank_name(s: Session, row: BankAccount) -> str | None:
    if "bank_name" not in row.rules.hash_extras:
        return None
    routing = row.routing_number
    return bank_name_lookup(s)(routing) if routing else None


def bank_account_out(s: Session, row: BankAccount) -> dict:
    return {
        "id": row.id,
        "type": row.type,
        "country": row.to_country_account().country,
        "currency": row.currency,
        "state": row.state,
        "account_holder_full_name": row.account_holder_full_name,
        "account_type": row.account_type,
        "created_at": row.created_at,
        "deleted_at": row.deleted_at,
        **row.to_canonical_hash(bank_name=_bank_name(s, row)),
    }


def bank_account_details(s: Session, user_id: int) -> dict:
    """Payload for the payout section of the settings page."""
    row = active_bank_account(s, user_id)
    return {
        "show_bank_account": row is not None,
        "routing_number": row.routing_number if row is not None else None,
        "account_number_visual": row.account_number_visual if row is not None else None,
        "bank_account": {"account_holder_full_name": row.account_holder_full_name} if row is not None else None,
    }
