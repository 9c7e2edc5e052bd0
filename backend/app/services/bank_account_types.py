"""Dispatch from a country code or type tag to the country's bank account rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from app.services.bank_account_rules import COUNTRY_PREFIXED, COUNTRY_RULES, CountryRules
from app.services.bank_account_validation import BankAccountInput, ValidationContext, validate_bank_account
from app.services.checksums import compact_iban

MASK = "******"


class UnsupportedCountryError(ValueError):
    def __init__(self, country_code: str | None):
        super().__init__(f"unsupported country: {country_code!r}")
        self.country_code = country_code


class UnsupportedBankAccountTypeError(ValueError):
    def __init__(self, type_name: str | None):
        super().__init__(f"unsupported bank account type: {type_name!r}")
        self.type_name = type_name


RULES_BY_TYPE: dict[str, CountryRules] = {r.type_name: r for r in COUNTRY_RULES}
RULES_BY_COUNTRY: dict[str, CountryRules] = {c: r for r in COUNTRY_RULES for c in r.countries}


def supported_country_codes() -> list[str]:
    return sorted(RULES_BY_COUNTRY)


def rules_for_country(country_code: str | None) -> CountryRules:
    code = (country_code or "").strip().upper()
    rules = RULES_BY_COUNTRY.get(code)
    if rules is None:
        raise UnsupportedCountryError(country_code)
    return rules


def rules_for_type(type_name: str | None, default: str | None = None) -> CountryRules:
    """Resolve a stored/submitted type tag.

    A missing tag only falls back to ``default`` when one is given; an unknown
    tag always raises.
    """
    name = (type_name or "").strip() or (default or "").strip()
    rules = RULES_BY_TYPE.get(name)
    if rules is None:
        raise UnsupportedBankAccountTypeError(type_name)
    return rules


@dataclass(frozen=True)
class CountryBankAccount:
    rules: CountryRules
    identifiers: Mapping[str, str | None] = field(default_factory=dict)
    account_number_last_four: str | None = None
    account_holder_full_name: str | None = None
    account_type: str | None = None
    country_code: str | None = None
    bank_name: str | None = None

    @property
    def type_name(self) -> str:
        return self.rules.type_name

    @property
    def routing_number(self) -> str | None:
        return self.rules.routing(self.identifiers)

    @property
    def bank_account_type(self) -> str:
        return self.rules.bank_account_type

    @property
    def country(self) -> str:
        return self.country_code or self.rules.default_country

    @property
    def currency(self) -> str:
        return self.rules.currency

    @property
    def account_number_visual(self) -> str:
        last_four = self.account_number_last_four or ""
        if self.rules.visual == COUNTRY_PREFIXED:
            return f"{self.country}{MASK}{last_four}"
        return f"{MASK}{last_four}"

    def to_canonical_hash(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "routing_number": self.routing_number,
            "account_number": self.account_number_visual,
            "bank_account_type": self.bank_account_type,
        }
        for key in self.rules.hash_extras:
            if key == "bank_name":
                if self.bank_name:
                    out["bank_name"] = self.bank_name
            elif key == "sort_code":
                out["sort_code"] = self.routing_number
            else:
                out[key] = self.identifiers.get(key)
        return out


def normalize_account_number(rules: CountryRules, raw: str | None) -> str | None:
    if raw is None:
        return None
    v = str(raw).replace("-", "").strip()
    if rules.iban is not None:
        v = compact_iban(v)
    return v or None


def build_input(
    rules: CountryRules,
    params: Mapping[str, Any] | None = None,
    *,
    account_number: str | None = None,
    account_holder_full_name: str | None = None,
    account_type: str | None = None,
    country_code: str | None = None,
) -> BankAccountInput:
    params = params or {}
    identifiers = {f.name: f.clean(params.get(f.name)) for f in rules.fields}
    number = normalize_account_number(rules, account_number)

    country = (country_code or "").strip().upper() or None
    if rules.is_multi_country and number and number[:2] in rules.countries:
        country = number[:2]
    if country not in rules.countries:
        country = rules.default_country

    kind = (account_type or "").strip().lower() or None
    if not rules.account_types:
        kind = None

    return BankAccountInput(
        rules=rules,
        identifiers=identifiers,
        account_number=number,
        account_holder_full_name=(account_holder_full_name or "").strip() or None,
        account_type=kind,
        country_code=country,
    )


def country_account(acct: BankAccountInput, bank_name: str | None = None) -> CountryBankAccount:
    number = acct.account_number or ""
    return CountryBankAccount(
        rules=acct.rules,
        identifiers=dict(acct.identifiers),
        account_number_last_four=number[-4:] or None,
        account_holder_full_name=acct.account_holder_full_name,
        account_type=acct.account_type,
        country_code=acct.country_code,
        bank_name=bank_name,
    )


@dataclass(frozen=True)
class BuildResult:
    account: CountryBankAccount | None
    errors: list[str]

    @property
    def ok(self) -> bool:
        return not self.errors


def bank_account_for_country(
    country_code: str,
    params: Mapping[str, Any] | None = None,
    *,
    account_number: str | None = None,
    account_holder_full_name: str | None = None,
    account_type: str | None = None,
    context: ValidationContext | None = None,
) -> BuildResult:
    """Single entry point for onboarding: dispatch, validate and present.

    Raises ``UnsupportedCountryError`` for countries outside the table.
    """
    rules = rules_for_country(country_code)
    acct = build_input(
        rules,
        params,
        account_number=account_number,
        account_holder_full_name=account_holder_full_name,
        account_type=account_type,
        country_code=country_code,
    )
    ctx = context or ValidationContext.from_settings()
    errors = validate_bank_account(acct, ctx)
    if errors:
        return BuildResult(account=None, errors=errors)

    bank_name = None
    if "bank_name" in rules.hash_extras and ctx.bank_name_lookup is not None:
        routing = rules.routing(acct.identifiers)
        bank_name = ctx.bank_name_lookup(routing) if routing else None
    return BuildResult(account=country_account(acct, bank_name=bank_name), errors=[])
