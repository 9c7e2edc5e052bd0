from uuid import uuid4

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401
from app.core.encryption import AccountNumberCipher, EncryptionKeyUnavailable
from app.db.base import Base
from app.models.audit_log import AuditLog
from app.models.bank import Bank
from app.models.bank_account import BankAccount
from app.models.payout import Payout
from app.models.user import User
from app.services.bank_account_presenter import bank_account_details, bank_account_out
from app.services.bank_account_state import InvalidStateTransition
from app.services.bank_account_types import UnsupportedCountryError
from app.services.bank_account_validation import ValidationContext
from app.services.payout_method import (
    BANK_ACCOUNT_IN_USE,
    UpdatePayoutMethod,
    active_bank_account,
    alive_bank_accounts,
    delete_all_bank_accounts,
    delete_bank_account,
    revalidate,
    to_sentence,
    bank_name_lookup,
    verify_bank_account,
)

PASSPHRASE = "payout-ops"


@pytest.fixture(scope="session")
def engine():
    eng = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture()
def session(engine):
    connection = engine.connect()
    trans = connection.begin()
    Session = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    s = Session()
    try:
        yield s
    finally:
        s.close()
        trans.rollback()
        connection.close()


@pytest.fixture(scope="module")
def cipher():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(PASSPHRASE.encode()),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return AccountNumberCipher(public_pem, private_pem)


def _mk_user(session):
    u = User(username=f"user-{uuid4().hex[:10]}", password_hash="x", role="user")
    session.add(u)
    session.flush()
    return u


def _ach_params(number="000123456789", confirmation=None, holder="Alice Smith", routing="021000021"):
    return {
        "bank_account": {
            "type": "AchAccount",
            "routing_number": routing,
            "account_number": number,
            "account_number_confirmation": number if confirmation is None else confirmation,
            "account_holder_full_name": holder,
            "account_type": "checking",
        }
    }


def _submit(session, user, params, cipher, context=None):
    return UpdatePayoutMethod(session, user, params, cipher=cipher, context=context or ValidationContext()).process()


def test_creates_encrypted_unverified_account(session, cipher):
    user = _mk_user(session)
    result = _submit(session, user, _ach_params(), cipher)

    assert result.success, result.messages
    row = result.bank_account
    assert row.type == "AchAccount"
    assert row.state == "unverified"
    assert row.bank_number == "021000021"
    assert row.account_number_last_four == "6789"
    assert row.account_number != b"000123456789"
    assert cipher.decrypt(row.account_number, PASSPHRASE) == "000123456789"
    assert row.account_number_visual == "******6789"
    assert row.country == "US"
    assert active_bank_account(session, user.id).id == row.id


def test_dashes_are_stripped_before_confirmation_and_storage(session, cipher):
    user = _mk_user(session)
    result = _submit(session, user, _ach_params(number="0001-2345-6789", confirmation="000123456789"), cipher)

    assert result.success
    assert cipher.decrypt(result.bank_account.account_number, PASSPHRASE) == "000123456789"


def test_confirmation_mismatch_persists_nothing(session, cipher):
    user = _mk_user(session)
    result = _submit(session, user, _ach_params(confirmation="000123456780"), cipher)

    assert not result.success
    assert result.error == "account_number_does_not_match"
    assert alive_bank_accounts(session, user.id) == []


def test_missing_params(session, cipher):
    user = _mk_user(session)
    result = _submit(session, user, {"bank_account": {}}, cipher)
    assert result.error == "bank_account_params_missing"


def test_invalid_account_persists_nothing_and_keeps_old(session, cipher):
    user = _mk_user(session)
    first = _submit(session, user, _ach_params(), cipher).bank_account

    result = _submit(session, user, _ach_params(number="12", routing="021000022", holder=""), cipher)

    assert not result.success
    assert result.error == "bank_account_error"
    assert result.messages == [
        "Account holder full name can't be blank.",
        "The routing number is invalid.",
    ]
    assert active_bank_account(session, user.id).id == first.id
    assert len(alive_bank_accounts(session, user.id)) == 1


def test_error_messages_are_joined_into_a_sentence(session, cipher):
    user = _mk_user(session)
    params = _ach_params(routing="0210", holder="")
    result = _submit(session, user, params, cipher)
    assert result.data == "Account holder full name can't be blank. and The routing number is invalid."
    assert to_sentence(["a", "b", "c"]) == "a, b, and c"


def test_replacing_soft_deletes_previous_account(session, cipher):
    user = _mk_user(session)
    first = _submit(session, user, _ach_params(), cipher).bank_account
    second = _submit(session, user, _ach_params(number="000987654321"), cipher).bank_account

    session.refresh(first)
    assert first.deleted_at is not None
    assert second.deleted_at is None
    assert [r.id for r in alive_bank_accounts(session, user.id)] == [second.id]
    assert session.get(BankAccount, first.id) is not None


def test_verified_but_deleted_account_is_not_active(session, cipher):
    user = _mk_user(session)
    first = _submit(session, user, _ach_params(), cipher).bank_account
    verify_bank_account(session, first, actor="admin")
    assert first.verified

    second = _submit(session, user, _ach_params(number="000987654321"), cipher).bank_account

    active = active_bank_account(session, user.id)
    assert active.id == second.id
    assert not active.verified


def test_verify_twice_is_rejected(session, cipher):
    user = _mk_user(session)
    row = _submit(session, user, _ach_params(), cipher).bank_account
    verify_bank_account(session, row, actor="admin")
    with pytest.raises(InvalidStateTransition):
        verify_bank_account(session, row, actor="admin")


def test_holder_name_only_renames_active_account(session, cipher):
    user = _mk_user(session)
    row = _submit(session, user, _ach_params(), cipher).bank_account

    result = _submit(session, user, {"bank_account": {"account_holder_full_name": "Alice B. Smith"}}, cipher)

    assert result.success
    assert result.bank_account.id == row.id
    assert result.bank_account.account_holder_full_name == "Alice B. Smith"
    assert len(alive_bank_accounts(session, user.id)) == 1


def test_rename_without_account(session, cipher):
    user = _mk_user(session)
    result = _submit(session, user, {"bank_account": {"account_holder_full_name": "Nobody"}}, cipher)
    assert result.error == "no_active_bank_account"


def test_same_account_for_two_users_is_rejected(session, cipher):
    alice = _mk_user(session)
    bob = _mk_user(session)
    assert _submit(session, alice, _ach_params(), cipher).success

    result = _submit(session, bob, _ach_params(holder="Bob Jones"), cipher)

    assert not result.success
    assert result.messages == [BANK_ACCOUNT_IN_USE]


def test_resubmitting_own_account_is_allowed(session, cipher):
    user = _mk_user(session)
    assert _submit(session, user, _ach_params(), cipher).success
    assert _submit(session, user, _ach_params(), cipher).success


def test_account_freed_after_deletion(session, cipher):
    alice = _mk_user(session)
    bob = _mk_user(session)
    row = _submit(session, alice, _ach_params(), cipher).bank_account
    delete_bank_account(session, row, actor=alice.username)

    assert _submit(session, bob, _ach_params(holder="Bob Jones"), cipher).success


def test_unsupported_country_raises(session, cipher):
    user = _mk_user(session)
    params = {"bank_account": {"country": "ZZ", "account_number": "123", "account_number_confirmation": "123"}}
    with pytest.raises(UnsupportedCountryError):
        _submit(session, user, params, cipher)


def test_country_param_dispatches_without_type(session, cipher):
    user = _mk_user(session)
    params = {
        "bank_account": {
            "country": "GB",
            "sort_code": "20-00-00",
            "account_number": "31926819",
            "account_number_confirmation": "31926819",
            "account_holder_full_name": "Jane Doe",
        }
    }
    result = _submit(session, user, params, cipher)

    assert result.success, result.messages
    row = result.bank_account
    assert row.type == "UkBankAccount"
    assert row.bank_number == "200000"
    assert row.routing_number == "20-00-00"
    assert row.currency == "gbp"


def test_iban_account_stores_country_from_iban(session, cipher):
    user = _mk_user(session)
    params = {
        "bank_account": {
            "type": "EuropeanBankAccount",
            "account_number": "DE89 3704 0044 0532 0130 00",
            "account_number_confirmation": "DE89 3704 0044 0532 0130 00",
            "account_holder_full_name": "Max Mustermann",
        }
    }
    row = _submit(session, user, params, cipher).bank_account
    assert row.country == "DE"
    assert row.account_number_visual == "DE******3000"


def test_encryption_unavailable_persists_nothing(session):
    user = _mk_user(session)
    with pytest.raises(EncryptionKeyUnavailable):
        _submit(session, user, _ach_params(), AccountNumberCipher(""))
    assert alive_bank_accounts(session, user.id) == []


def test_revalidate_is_idempotent(session, cipher):
    user = _mk_user(session)
    row = _submit(session, user, _ach_params(), cipher).bank_account

    ctx = ValidationContext()
    assert revalidate(row, cipher, PASSPHRASE, ctx) == []
    assert revalidate(row, cipher, PASSPHRASE, ctx) == []
    assert row.deleted_at is None


def test_payouts_survive_account_deletion(session, cipher):
    user = _mk_user(session)
    row = _submit(session, user, _ach_params(), cipher).bank_account
    session.add(Payout(user_id=user.id, bank_account_id=row.id, amount_cents=12500, currency="usd"))
    session.flush()

    delete_bank_account(session, row, actor=user.username)

    payout = session.execute(select(Payout).where(Payout.user_id == user.id)).scalar_one()
    assert payout.bank_account_id == row.id
    assert payout.bank_account.deleted_at is not None


def test_delete_all_for_account_closure(session, cipher):
    user = _mk_user(session)
    _submit(session, user, _ach_params(), cipher)
    _submit(session, user, _ach_params(number="000987654321"), cipher)

    assert delete_all_bank_accounts(session, user.id, actor="admin") == 1
    assert alive_bank_accounts(session, user.id) == []
    assert delete_all_bank_accounts(session, user.id, actor="admin") == 0


def test_audit_entries_carry_masked_numbers_only(session, cipher):
    user = _mk_user(session)
    row = _submit(session, user, _ach_params(), cipher).bank_account

    entry = session.execute(
        select(AuditLog).where(AuditLog.action == "bank_account.create", AuditLog.entity_id == row.id)
    ).scalar_one()
    assert entry.owner_user_id == user.id
    assert entry.details["account_number"] == "******6789"
    assert "000123456789" not in str(entry.details)


def test_presenter_includes_directory_bank_name(session, cipher):
    session.add(Bank(routing_number="021000021", name="JPMorgan Chase Bank"))
    session.flush()
    user = _mk_user(session)
    row = _submit(session, user, _ach_params(), cipher).bank_account

    out = bank_account_out(session, row)
    assert out["bank_name"] == "JPMorgan Chase Bank"
    assert out["account_number"] == "******6789"
    assert out["bank_account_type"] == "ACH"

    details = bank_account_details(session, user.id)
    assert details == {
        "show_bank_account": True,
        "routing_number": "021000021",
        "account_number_visual": "******6789",
        "bank_account": {"account_holder_full_name": "Alice Smith"},
    }


def test_presenter_without_account(session):
    user = _mk_user(session)
    assert bank_account_details(session, user.id)["show_bank_account"] is False


def test_disallowed_bank_rejected_through_service(session, cipher):
    session.add(Bank(routing_number="021000021", name="Acme Payments"))
    session.flush()
    user = _mk_user(session)
    ctx = ValidationContext(disallowed_bank_names=frozenset({"acme payments"}), bank_name_lookup=bank_name_lookup(session))
    result = _submit(session, user, _ach_params(), cipher, context=ctx)
    assert result.messages == ["Payouts to Acme Payments accounts are not supported."]
