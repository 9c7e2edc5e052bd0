from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

from app.core.config import settings
from app.services.bank_account_rules import IBAN_MOD97, CountryRules
from app.services.checksums import iban_checksum_valid, iban_valid

ACCOUNT_NUMBER_BLANK = "Account number can't be blank."
ACCOUNT_NUMBER_INVALID = "The account number is invalid."
HOLDER_NAME_BLANK = "Account holder full name can't be blank."
ACCOUNT_TYPE_BLANK = "Account type can't be blank."
ACCOUNT_TYPE_INVALID = "The account type is invalid."


@dataclass(frozen=True)
class BankAccountInput:
    rules: CountryRules
    identifiers: Mapping[str, str | None] = field(default_factory=dict)
    account_number: str | None = None
    account_holder_full_name: str | None = None
    account_type: str | None = None
    country_code: str | None = None


@dataclass(frozen=True)
class ValidationContext:
    enforce_sandbox_exempt_checks: bool = True
    disallowed_bank_names: frozenset[str] = frozenset()
    bank_name_lookup: Callable[[str], str | None] | None = None

    @classmethod
    def from_settings(cls, bank_name_lookup: Callable[[str], str | None] | None = None) -> "ValidationContext":
        return cls(
            enforce_sandbox_exempt_checks=settings.enforce_sandbox_exempt_checks,
            disallowed_bank_names=settings.disallowed_bank_name_set(),
            bank_name_lookup=bank_name_lookup,
        )


def validate_account_holder_full_name(acct: BankAccountInput, ctx: ValidationContext) -> list[str]:
    if not (acct.account_holder_full_name or "").strip():
        return [HOLDER_NAME_BLANK]
    return []


def validate_identifiers(acct: BankAccountInput, ctx: ValidationContext) -> list[str]:
    errors: list[str] = []
    for rule in acct.rules.fields:
        v = acct.identifiers.get(rule.name)
        if not v:
            if rule.required:
                errors.append(rule.blank_message)
        elif not rule.pattern.fullmatch(v):
            errors.append(rule.invalid_message)
        elif rule.checksum is not None and not rule.checksum(v):
            errors.append(rule.invalid_message)
    return errors


def _iban_ok(rules: CountryRules, number: str) -> bool:
    prefix = number[:2]
    if prefix not in rules.countries:
        return False
    if rules.iban.mode == IBAN_MOD97:
        if rules.iban.structure is not None and not rules.iban.structure.fullmatch(number):
            return False
        return iban_checksum_valid(number, prefix)
    return iban_valid(number, prefix)


def validate_account_number(acct: BankAccountInput, ctx: ValidationContext) -> list[str]:
    number = acct.account_number
    if not number:
        return [ACCOUNT_NUMBER_BLANK]

    rules = acct.rules
    # some countries take either a national account number or an IBAN
    if rules.iban is not None and (rules.account_number is None or number[:2].isalpha()):
        if rules.sandbox_exempt and not ctx.enforce_sandbox_exempt_checks:
            return []
        return [] if _iban_ok(rules, number) else [ACCOUNT_NUMBER_INVALID]

    if rules.account_number is not None and not rules.account_number.fullmatch(number):
        return [ACCOUNT_NUMBER_INVALID]
    if rules.account_number_checksum is not None and not rules.account_number_checksum(number):
        return [ACCOUNT_NUMBER_INVALID]
    return []


def validate_account_type(acct: BankAccountInput, ctx: ValidationContext) -> list[str]:
    rules = acct.rules
    if not acct.account_type:
        return [ACCOUNT_TYPE_BLANK] if rules.account_type_required else []
    if acct.account_type not in rules.account_types:
        return [ACCOUNT_TYPE_INVALID]
    return []


def validate_bank_not_disallowed(acct: BankAccountInput, ctx: ValidationContext) -> list[str]:
    if not acct.rules.check_disallowed_banks or not ctx.disallowed_bank_names or ctx.bank_name_lookup is None:
        return []
    routing = acct.rules.routing(acct.identifiers)
    if not routing:
        return []
    name = ctx.bank_name_lookup(routing)
    if name and name.strip().lower() in ctx.disallowed_bank_names:
        return [f"Payouts to {name} accounts are not supported."]
    return []


VALIDATORS: tuple[Callable[[BankAccountInput, ValidationContext], list[str]], ...] = (
    validate_account_holder_full_name,
    validate_identifiers,
    validate_account_number,
    validate_account_type,
    validate_bank_not_disallowed,
)


def validate_bank_account(acct: BankAccountInput, ctx: ValidationContext | None = None) -> list[str]:
    """Run every validator and return all messages; an empty list means valid."""
    ctx = ctx or ValidationContext.from_settings()
    errors: list[str] = []
    for validator in VALIDATORS:
        errors.extend(validator(acct, ctx))
    return errors
