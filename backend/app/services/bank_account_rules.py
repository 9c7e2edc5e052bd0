"""Per-country bank account format rules.

Every supported bank account type is one ``CountryRules`` entry. The table is
built once at import time and never mutated, so validators can share it
freely between requests.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Mapping

from app.services.checksums import aba_routing_number_valid, clabe_valid

BANK_NUMBER = "bank_number"
BRANCH_CODE = "branch_code"

PLAIN = "plain"
COUNTRY_PREFIXED = "country_prefixed"

IBAN_REGISTRY = "registry"
IBAN_MOD97 = "mod97"

SWIFT_CODE = r"[0-9a-zA-Z]{8,11}"

EURO_AREA_COUNTRIES = (
    "AT", "BE", "CY", "DE", "EE", "ES", "FI", "FR", "GR", "HR",
    "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PT", "SI", "SK",
)

ACCOUNT_TYPES = ("checking", "savings")


# Python `\d` matches any Unicode digit; identifiers are ASCII only.
def _re(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.ASCII)


def _strip_separators(v: str) -> str:
    return re.sub(r"[\s-]", "", v)


@dataclass(frozen=True)
class FieldRule:
    name: str
    column: str
    label: str
    pattern: re.Pattern
    normalize: Callable[[str], str] | None = None
    checksum: Callable[[str], bool] | None = None
    required: bool = True

    @property
    def blank_message(self) -> str:
        return f"{self.label[:1].upper()}{self.label[1:]} can't be blank."

    @property
    def invalid_message(self) -> str:
        return f"The {self.label} is invalid."

    def clean(self, raw: str | None) -> str | None:
        if raw is None:
            return None
        v = str(raw).strip()
        if self.normalize is not None:
            v = self.normalize(v)
        return v or None


@dataclass(frozen=True)
class IbanRule:
    mode: str = IBAN_REGISTRY
    # only consulted for IBAN_MOD97, where the registry has no structure to offer
    structure: re.Pattern | None = None


def _no_routing(fields: Mapping[str, str | None]) -> str | None:
    return None


def joined(
    *names: str, sep: str = "", optional: tuple[str, ...] = ()
) -> Callable[[Mapping[str, str | None]], str | None]:
    """Routing number built from identifier fields; optional ones are skipped when blank."""

    def routing(fields: Mapping[str, str | None]) -> str | None:
        if not all(fields.get(n) for n in names if n not in optional):
            return None
        return sep.join(fields[n] for n in names if fields.get(n))

    return routing


def _sort_code_routing(fields: Mapping[str, str | None]) -> str | None:
    v = fields.get("sort_code")
    if not v:
        return None
    return f"{v[0:2]}-{v[2:4]}-{v[4:6]}"


@dataclass(frozen=True)
class CountryRules:
    type_name: str
    bank_account_type: str
    countries: tuple[str, ...]
    currency: str
    fields: tuple[FieldRule, ...] = ()
    account_number: re.Pattern | None = None
    account_number_checksum: Callable[[str], bool] | None = None
    iban: IbanRule | None = None
    routing: Callable[[Mapping[str, str | None]], str | None] = _no_routing
    visual: str = PLAIN
    hash_extras: tuple[str, ...] = ()
    account_types: tuple[str, ...] = ()
    account_type_required: bool = False
    sandbox_exempt: bool = False
    check_disallowed_banks: bool = False

    @property
    def default_country(self) -> str:
        return self.countries[0]

    @property
    def is_multi_country(self) -> bool:
        return len(self.countries) > 1

    def permitted_params(self) -> tuple[str, ...]:
        names = tuple(f.name for f in self.fields)
        if self.account_types:
            names += ("account_type",)
        return names

    def field(self, name: str) -> FieldRule | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


def routing_number_field() -> FieldRule:
    return FieldRule("routing_number", BANK_NUMBER, "routing number", _re(r"\d{9}"), checksum=aba_routing_number_valid)


def bank_code(regex: str = SWIFT_CODE) -> FieldRule:
    return FieldRule("bank_code", BANK_NUMBER, "bank code", _re(regex))


def branch_code(regex: str, required: bool = True) -> FieldRule:
    return FieldRule("branch_code", BRANCH_CODE, "branch code", _re(regex), required=required)


def _digits(lo: int, hi: int | None = None) -> re.Pattern:
    return _re(rf"\d{{{lo}}}" if hi is None else rf"\d{{{lo},{hi}}}")


def _alnum(lo: int, hi: int) -> re.Pattern:
    return _re(rf"[0-9a-zA-Z]{{{lo},{hi}}}")


def _mod97(country: str, bban: str) -> IbanRule:
    return IbanRule(IBAN_MOD97, _re(rf"{country}\d{{2}}{bban}"))


def _iban_country(type_name: str, country: str, currency: str, *, fields: tuple[FieldRule, ...] = (), **kw) -> CountryRules:
    return CountryRules(
        type_name=type_name,
        bank_account_type=country,
        countries=(country,),
        currency=currency,
        fields=fields,
        iban=kw.pop("iban", IbanRule()),
        routing=kw.pop("routing", joined("bank_code") if fields else _no_routing),
        visual=COUNTRY_PREFIXED,
        **kw,
    )


def _swift_country(type_name: str, country: str, currency: str, account_number: re.Pattern, **kw) -> CountryRules:
    return CountryRules(
        type_name=type_name,
        bank_account_type=country,
        countries=(country,),
        currency=currency,
        fields=(bank_code(kw.pop("bank_code_regex", SWIFT_CODE)),),
        account_number=account_number,
        routing=joined("bank_code"),
        **kw,
    )


def _split_code_country(
    type_name: str, country: str, currency: str, bank_regex: str, branch_regex: str, account_number: re.Pattern, sep: str = "",
    branch_required: bool = True,
) -> CountryRules:
    return CountryRules(
        type_name=type_name,
        bank_account_type=country,
        countries=(country,),
        currency=currency,
        fields=(bank_code(bank_regex), branch_code(branch_regex, required=branch_required)),
        account_number=account_number,
        routing=joined("bank_code", "branch_code", sep=sep, optional=() if branch_required else ("branch_code",)),
        hash_extras=("bank_code", "branch_code"),
    )


COUNTRY_RULES: tuple[CountryRules, ...] = (
    CountryRules(
        type_name="AchAccount",
        bank_account_type="ACH",
        countries=("US",),
        currency="usd",
        fields=(routing_number_field(),),
        account_number=_digits(1, 17),
        routing=joined("routing_number"),
        hash_extras=("bank_name",),
        account_types=ACCOUNT_TYPES,
        check_disallowed_banks=True,
    ),
    CountryRules(
        type_name="CanadianBankAccount",
        bank_account_type="CANADIAN",
        countries=("CA",),
        currency="cad",
        fields=(
            FieldRule("institution_number", BANK_NUMBER, "institution number", _digits(3)),
            FieldRule("transit_number", BRANCH_CODE, "transit number", _digits(5)),
        ),
        account_number=_digits(5, 12),
        routing=joined("transit_number", "institution_number", sep="-"),
        hash_extras=("institution_number", "transit_number"),
    ),
    CountryRules(
        type_name="AustralianBankAccount",
        bank_account_type="AUSTRALIAN",
        countries=("AU",),
        currency="aud",
        fields=(FieldRule("bsb_number", BANK_NUMBER, "BSB number", _digits(6), normalize=_strip_separators),),
        account_number=_digits(5, 9),
        routing=joined("bsb_number"),
        hash_extras=("bsb_number",),
    ),
    CountryRules(
        type_name="UkBankAccount",
        bank_account_type="UK",
        countries=("GB",),
        currency="gbp",
        fields=(FieldRule("sort_code", BANK_NUMBER, "sort code", _digits(6), normalize=_strip_separators),),
        account_number=_digits(8),
        routing=_sort_code_routing,
        hash_extras=("sort_code",),
    ),
    CountryRules(
        type_name="EuropeanBankAccount",
        bank_account_type="EUROPEAN",
        countries=EURO_AREA_COUNTRIES,
        currency="eur",
        iban=IbanRule(),
        visual=COUNTRY_PREFIXED,
    ),
    CountryRules(
        type_name="HongKongBankAccount",
        bank_account_type="HK",
        countries=("HK",),
        currency="hkd",
        fields=(
            FieldRule("clearing_code", BANK_NUMBER, "clearing code", _digits(3)),
            branch_code(r"\d{3}"),
        ),
        account_number=_digits(6, 12),
        routing=joined("clearing_code", "branch_code", sep="-"),
        hash_extras=("clearing_code", "branch_code"),
    ),
    CountryRules(
        type_name="NewZealandBankAccount",
        bank_account_type="NZ",
        countries=("NZ",),
        currency="nzd",
        account_number=_digits(15, 16),
    ),
    _split_code_country("SingaporeanBankAccount", "SG", "sgd", r"\d{4}", r"\d{3}", _digits(6, 12), sep="-"),
    _iban_country("SwissBankAccount", "CH", "chf"),
    _iban_country("PolandBankAccount", "PL", "pln"),
    _iban_country("CzechRepublicBankAccount", "CZ", "czk"),
    _swift_country("ThailandBankAccount", "TH", "thb", _digits(6, 16), bank_code_regex=r"\d{3}"),
    _iban_country("BulgariaBankAccount", "BG", "bgn"),
    _iban_country("DenmarkBankAccount", "DK", "dkk"),
    _iban_country("HungaryBankAccount", "HU", "huf"),
    _swift_country("KoreaBankAccount", "KR", "krw", _digits(11, 14)),
    _iban_country("UaeBankAccount", "AE", "aed"),
    _swift_country("AntiguaAndBarbudaBankAccount", "AG", "xcd", _alnum(1, 32)),
    _swift_country("TanzaniaBankAccount", "TZ", "tzs", _alnum(10, 14)),
    _swift_country("NamibiaBankAccount", "NA", "nad", _digits(8, 13)),
    _iban_country("IsraelBankAccount", "IL", "ils"),
    _split_code_country("TrinidadAndTobagoBankAccount", "TT", "ttd", r"\d{3}", r"\d{5}", _digits(1, 17)),
    _swift_country("PhilippinesBankAccount", "PH", "php", _alnum(1, 17)),
    _iban_country("RomaniaBankAccount", "RO", "ron"),
    _iban_country("SwedenBankAccount", "SE", "sek"),
    CountryRules(
        type_name="MexicoBankAccount",
        bank_account_type="MX",
        countries=("MX",),
        currency="mxn",
        account_number=_digits(18),
        account_number_checksum=clabe_valid,
    ),
    CountryRules(
        type_name="ArgentinaBankAccount",
        bank_account_type="AR",
        countries=("AR",),
        currency="ars",
        account_number=_digits(22),
    ),
    _iban_country("LiechtensteinBankAccount", "LI", "chf", sandbox_exempt=True),
    CountryRules(
        type_name="PeruBankAccount",
        bank_account_type="PE",
        countries=("PE",),
        currency="pen",
        account_number=_digits(20),
    ),
    _iban_country("NorwayBankAccount", "NO", "nok"),
    CountryRules(
        type_name="IndianBankAccount",
        bank_account_type="IN",
        countries=("IN",),
        currency="inr",
        fields=(FieldRule("ifsc", BANK_NUMBER, "IFSC", _re(r"[A-Z]{4}0[A-Z0-9]{6}"), normalize=str.upper),),
        account_number=_digits(8, 18),
        routing=joined("ifsc"),
        hash_extras=("ifsc",),
    ),
    _swift_country("VietnamBankAccount", "VN", "vnd", _digits(1, 17), bank_code_regex=r"\d{8}"),
    _swift_country("TaiwanBankAccount", "TW", "twd", _digits(10, 14), bank_code_regex=r"\d{7}"),
    _iban_country("BosniaAndHerzegovinaBankAccount", "BA", "bam", fields=(bank_code(),)),
    _swift_country("IndonesiaBankAccount", "ID", "idr", _digits(1, 35), bank_code_regex=r"[0-9a-zA-Z]{3,4}"),
    _iban_country("CostaRicaBankAccount", "CR", "crc"),
    _swift_country("BotswanaBankAccount", "BW", "bwp", _alnum(1, 16)),
    _swift_country(
        "ChileBankAccount", "CL", "clp", _digits(5, 25),
        bank_code_regex=r"\d{3}", account_types=ACCOUNT_TYPES, account_type_required=True,
    ),
    _iban_country("PakistanBankAccount", "PK", "pkr", fields=(bank_code(),)),
    _iban_country("TurkeyBankAccount", "TR", "try", fields=(bank_code(),)),
    _swift_country("MoroccoBankAccount", "MA", "mad", _digits(24), iban=_mod97("MA", r"\d{24}")),
    _iban_country(
        "AzerbaijanBankAccount", "AZ", "azn",
        fields=(bank_code(r"\d{6}"), branch_code(r"\d{6}")),
        routing=joined("bank_code", "branch_code", sep="-"),
        hash_extras=("bank_code", "branch_code"),
    ),
    _iban_country("AlbaniaBankAccount", "AL", "all", fields=(bank_code(),)),
    _iban_country("BahrainBankAccount", "BH", "bhd", fields=(bank_code(),)),
    _iban_country("JordanBankAccount", "JO", "jod", fields=(bank_code(),)),
    _swift_country("NigeriaBankAccount", "NG", "ngn", _digits(10)),
    _iban_country("SerbiaBankAccount", "RS", "rsd", fields=(bank_code(),)),
    _swift_country("SouthAfricaBankAccount", "ZA", "zar", _digits(7, 11)),
    _swift_country("KenyaBankAccount", "KE", "kes", _digits(7, 16)),
    _iban_country("EgyptBankAccount", "EG", "egp", fields=(bank_code(),)),
    _swift_country(
        "ColombiaBankAccount", "CO", "cop", _digits(6, 18),
        bank_code_regex=r"\d{3}", account_types=ACCOUNT_TYPES, account_type_required=True,
    ),
    _iban_country("SaudiArabiaBankAccount", "SA", "sar", fields=(bank_code(),)),
    _split_code_country("JapanBankAccount", "JP", "jpy", r"\d{4}", r"\d{3}", _digits(4, 8)),
    _iban_country("KazakhstanBankAccount", "KZ", "kzt", fields=(bank_code(),)),
    _swift_country("MalaysiaBankAccount", "MY", "myr", _digits(5, 17)),
    _iban_country("GibraltarBankAccount", "GI", "gbp", sandbox_exempt=True),
    _iban_country(
        "OmanBankAccount", "OM", "omr",
        fields=(bank_code(),),
        account_number=_digits(6, 18),
        iban=_mod97("OM", r"\d{3}[0-9A-Z]{16}"),
    ),
    _split_code_country("JamaicaBankAccount", "JM", "jmd", r"\d{3}", r"\d{5}", _digits(1, 18), sep="-"),
    _split_code_country("SriLankaBankAccount", "LK", "lkr", SWIFT_CODE, r"\d{3,7}", _digits(10, 18), sep="-"),
    _iban_country("KuwaitBankAccount", "KW", "kwd", fields=(bank_code(),)),
    _iban_country("IcelandBankAccount", "IS", "isk"),
    _iban_country("QatarBankAccount", "QA", "qar", fields=(bank_code(),)),
    _swift_country("CambodiaBankAccount", "KH", "khr", _digits(5, 15)),
    _iban_country("MonacoBankAccount", "MC", "eur", sandbox_exempt=True),
    _iban_country("SanMarinoBankAccount", "SM", "eur", fields=(bank_code(),), sandbox_exempt=True),
    _iban_country(
        "SenegalBankAccount", "SN", "xof",
        iban=_mod97("SN", r"[0-9A-Z]{24}"),
    ),
    _split_code_country(
        "DominicanRepublicBankAccount", "DO", "dop", r"\d{3}", r"\d{3}", _digits(1, 28), sep="-",
        branch_required=False,
    ),
    _swift_country("EthiopiaBankAccount", "ET", "etb", _digits(8, 16)),
    _swift_country("BruneiBankAccount", "BN", "bnd", _alnum(1, 17)),
    _swift_country("GuyanaBankAccount", "GY", "gyd", _alnum(1, 32)),
    _iban_country("GuatemalaBankAccount", "GT", "gtq", fields=(bank_code(),)),
    _swift_country("RwandaBankAccount", "RW", "rwf", _alnum(1, 15)),
    _swift_country("EcuadorBankAccount", "EC", "usd", _alnum(5, 18)),
    _swift_country("UruguayBankAccount", "UY", "uyu", _digits(1, 12), bank_code_regex=r"\d{3}"),
    _iban_country("MauritiusBankAccount", "MU", "mur", fields=(bank_code(),)),
    _iban_country("AngolaBankAccount", "AO", "aoa", fields=(bank_code(),), iban=_mod97("AO", r"\d{21}")),
    _iban_country("NigerBankAccount", "NE", "xof", iban=_mod97("NE", r"[0-9A-Z]{24}")),
    _swift_country("BangladeshBankAccount", "BD", "bdt", _digits(13, 17), bank_code_regex=r"\d{9}"),
    _swift_country("BhutanBankAccount", "BT", "btn", _digits(1, 17)),
    _swift_country("LaosBankAccount", "LA", "lak", _alnum(1, 18)),
    _swift_country("MozambiqueBankAccount", "MZ", "mzn", _digits(21)),
    _split_code_country("UzbekistanBankAccount", "UZ", "uzs", SWIFT_CODE, r"\d{5}", _digits(20), sep="-"),
    _swift_country("BoliviaBankAccount", "BO", "bob", _digits(10, 15), bank_code_regex=r"\d{1,3}"),
    _iban_country("TunisiaBankAccount", "TN", "tnd"),
    _iban_country("MoldovaBankAccount", "MD", "mdl", fields=(bank_code(),)),
    _iban_country("NorthMacedoniaBankAccount", "MK", "mkd", fields=(bank_code(),)),
    _swift_country("PanamaBankAccount", "PA", "usd", _alnum(1, 18)),
    _iban_country("ElSalvadorBankAccount", "SV", "usd", fields=(bank_code(),)),
    _iban_country("MadagascarBankAccount", "MG", "mga", fields=(bank_code(),), iban=_mod97("MG", r"\d{23}")),
    _swift_country("ParaguayBankAccount", "PY", "pyg", _digits(1, 16), bank_code_regex=r"\d{1,2}"),
    _swift_country("GhanaBankAccount", "GH", "ghs", _digits(8, 20), bank_code_regex=r"\d{6}"),
    _swift_country("ArmeniaBankAccount", "AM", "amd", _digits(11, 16)),
    _swift_country("BahamasBankAccount", "BS", "bsd", _alnum(1, 12)),
    _swift_country("SaintLuciaBankAccount", "LC", "xcd", _alnum(1, 32)),
    _swift_country("MongoliaBankAccount", "MN", "mnt", _digits(5, 20)),
    _swift_country("GabonBankAccount", "GA", "xaf", _digits(23)),
    _swift_country("AlgeriaBankAccount", "DZ", "dzd", _digits(20)),
    _swift_country("MacaoBankAccount", "MO", "mop", _digits(1, 19)),
    _iban_country("BeninBankAccount", "BJ", "xof", iban=_mod97("BJ", r"[0-9A-Z]{24}")),
    _iban_country("CoteDIvoireBankAccount", "CI", "xof", iban=_mod97("CI", r"[0-9A-Z]{24}")),
)
