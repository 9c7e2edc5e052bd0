import pytest

from app.services.bank_account_rules import COUNTRY_RULES, EURO_AREA_COUNTRIES
from app.services.bank_account_types import (
    RULES_BY_COUNTRY,
    RULES_BY_TYPE,
    CountryBankAccount,
    UnsupportedBankAccountTypeError,
    UnsupportedCountryError,
    bank_account_for_country,
    rules_for_country,
    rules_for_type,
    supported_country_codes,
)
from app.services.bank_account_validation import ValidationContext

CAPABILITIES = ("routing_number", "bank_account_type", "account_number_visual", "country", "currency")


def test_type_names_and_country_codes_are_unique():
    assert len(RULES_BY_TYPE) == len(COUNTRY_RULES)
    assert len(RULES_BY_COUNTRY) == sum(len(r.countries) for r in COUNTRY_RULES)
    assert len(COUNTRY_RULES) >= 40


@pytest.mark.parametrize("code", supported_country_codes())
def test_every_supported_country_dispatches_to_full_capability_set(code):
    rules = rules_for_country(code)
    assert code in rules.countries

    acct = CountryBankAccount(rules=rules, account_number_last_four="1234", country_code=code)
    for name in CAPABILITIES:
        assert hasattr(acct, name)
    assert acct.bank_account_type
    assert acct.country == code
    assert len(acct.currency) == 3
    assert acct.account_number_visual.endswith("******1234")

    h = acct.to_canonical_hash()
    assert {"routing_number", "account_number", "bank_account_type"} <= set(h)
    assert h["account_number"] == acct.account_number_visual


@pytest.mark.parametrize("code", ["ZZ", "XX", "", None, "USA"])
def test_unsupported_country_fails_fast(code):
    with pytest.raises(UnsupportedCountryError):
        rules_for_country(code)


def test_unsupported_country_is_not_silently_us():
    with pytest.raises(UnsupportedCountryError):
        bank_account_for_country("BR", {"routing_number": "021000021"}, account_number="123456")


def test_country_lookup_is_case_insensitive():
    assert rules_for_country("us").type_name == "AchAccount"
    assert rules_for_country(" jp ").type_name == "JapanBankAccount"


def test_euro_area_countries_share_european_rules():
    for code in EURO_AREA_COUNTRIES:
        assert rules_for_country(code).type_name == "EuropeanBankAccount"


def test_type_lookup_default_is_explicit():
    with pytest.raises(UnsupportedBankAccountTypeError):
        rules_for_type(None)
    with pytest.raises(UnsupportedBankAccountTypeError):
        rules_for_type("")
    assert rules_for_type(None, default="AchAccount").type_name == "AchAccount"
    # an unknown tag never falls back
    with pytest.raises(UnsupportedBankAccountTypeError):
        rules_for_type("NarniaBankAccount", default="AchAccount")


def test_permitted_params_follow_country_fields():
    assert rules_for_type("CanadianBankAccount").permitted_params() == ("institution_number", "transit_number")
    assert rules_for_type("JapanBankAccount").permitted_params() == ("bank_code", "branch_code")
    assert rules_for_type("DenmarkBankAccount").permitted_params() == ()
    assert rules_for_type("ChileBankAccount").permitted_params() == ("bank_code", "account_type")


def test_entry_point_returns_validated_account():
    result = bank_account_for_country(
        "JP",
        {"bank_code": "0001", "branch_code": "001"},
        account_number="1234567",
        account_holder_full_name="Taro Yamada",
        context=ValidationContext(),
    )
    assert result.ok
    assert result.account.type_name == "JapanBankAccount"
    assert result.account.routing_number == "0001001"
    assert result.account.account_number_visual == "******4567"
    assert result.account.currency == "jpy"


def test_entry_point_collects_errors_instead_of_raising():
    result = bank_account_for_country(
        "JP",
        {"bank_code": "", "branch_code": "01"},
        account_number="12",
        account_holder_full_name="",
        context=ValidationContext(),
    )
    assert not result.ok
    assert result.account is None
    assert result.errors == [
        "Account holder full name can't be blank.",
        "Bank code can't be blank.",
        "The branch code is invalid.",
        "The account number is invalid.",
    ]


def test_entry_point_attaches_directory_bank_name_for_ach():
    ctx = ValidationContext(bank_name_lookup={"021000021": "JPMorgan Chase Bank"}.get)
    result = bank_account_for_country(
        "US",
        {"routing_number": "021000021"},
        account_number="000123456789",
        account_holder_full_name="Alice Smith",
        context=ctx,
    )
    assert result.ok
    assert result.account.to_canonical_hash()["bank_name"] == "JPMorgan Chase Bank"


@pytest.mark.parametrize(
    "country, params, number, routing",
    [
        ("ET", {"bank_code": "AAAAETETXXX"}, "0000000012345", "AAAAETETXXX"),
        ("BN", {"bank_code": "AAAABNBBXXX"}, "0000123456789", "AAAABNBBXXX"),
        ("GY", {"bank_code": "AAAAGYGGXYZ"}, "000123456789", "AAAAGYGGXYZ"),
        ("GT", {"bank_code": "AAAAGTGCXYZ"}, "GT82TRAJ01020000001210029690", "AAAAGTGCXYZ"),
        ("RW", {"bank_code": "AAAARWRWXXX"}, "000123456789", "AAAARWRWXXX"),
        ("EC", {"bank_code": "AAAAECE1XXX"}, "000123456789", "AAAAECE1XXX"),
        ("UY", {"bank_code": "999"}, "000123456789", "999"),
        ("MU", {"bank_code": "AAAAMUMUXYZ"}, "MU17BOMM0101101030300200000MUR", "AAAAMUMUXYZ"),
        ("AO", {"bank_code": "AAAAAOAOXXX"}, "AO06004400006729503010102", "AAAAAOAOXXX"),
        ("NE", {}, "NE58NE0380100100130305000268", None),
        ("BD", {"bank_code": "110000000"}, "0000123456789", "110000000"),
        ("BT", {"bank_code": "AAAABTBTXXX"}, "0000123456789", "AAAABTBTXXX"),
        ("LA", {"bank_code": "AAAALALAXXX"}, "000123456789", "AAAALALAXXX"),
        ("MZ", {"bank_code": "AAAAMZMXXXX"}, "001234567890123456789", "AAAAMZMXXXX"),
        ("UZ", {"bank_code": "AAAAUZUZXXX", "branch_code": "00000"}, "99934500012345670024", "AAAAUZUZXXX-00000"),
        ("BO", {"bank_code": "040"}, "000123456789", "040"),
        ("TN", {}, "TN5904018104004942712345", None),
        ("MD", {"bank_code": "AAAAMDMDXXX"}, "MD07AG123456789012345678", "AAAAMDMDXXX"),
        ("MK", {"bank_code": "AAAAMK2XXXX"}, "MK49250120000058907", "AAAAMK2XXXX"),
        ("PA", {"bank_code": "AAAAPAPAXXX"}, "000123456789", "AAAAPAPAXXX"),
        ("SV", {"bank_code": "AAAASVS1XXX"}, "SV44BCIE12345678901234567890", "AAAASVS1XXX"),
        ("MG", {"bank_code": "AAAAMGMGXXX"}, "MG4800005000011234567890123", "AAAAMGMGXXX"),
        ("PY", {"bank_code": "0"}, "0567890123456789", "0"),
        ("GH", {"bank_code": "022112"}, "000123456789", "022112"),
        ("AM", {"bank_code": "AAAAAMNNXXX"}, "00001234567", "AAAAAMNNXXX"),
        ("BS", {"bank_code": "AAAABSNSXXX"}, "0001234", "AAAABSNSXXX"),
        ("LC", {"bank_code": "AAAALCLCXYZ"}, "000123456789", "AAAALCLCXYZ"),
        ("MN", {"bank_code": "AAAAMNUBXXX"}, "0002222001", "AAAAMNUBXXX"),
        ("GA", {"bank_code": "AAAAGAGAXXX"}, "00001234567890123456789", "AAAAGAGAXXX"),
        ("DZ", {"bank_code": "AAAADZDZXXX"}, "00001234567890123456", "AAAADZDZXXX"),
        ("MO", {"bank_code": "AAAAMOMXXXX"}, "0000000001234567897", "AAAAMOMXXXX"),
        ("BJ", {}, "BJ66BJ0610100100144390000769", None),
        ("CI", {}, "CI93CI0080111301134291200589", None),
    ],
)
def test_payout_countries_accept_known_good_accounts(country, params, number, routing):
    result = bank_account_for_country(
        country,
        params,
        account_number=number,
        account_holder_full_name="barnabas ngagy",
        context=ValidationContext(),
    )
    assert result.errors == []
    assert result.account.routing_number == routing
    assert result.account.account_number_visual.endswith(number[-4:])


def test_every_payout_type_is_in_the_table():
    assert len(RULES_BY_TYPE) == 99
