from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session
from app.api.deps import db, current_account, require_admin
from app.core.encryption import EncryptionKeyUnavailable
from app.models.bank_account import BankAccount
from app.models.user import User
from app.schemas.bank_account import (
    BankAccountDetailsOut,
    BankAccountOut,
    BankAccountTypeOut,
    UpdatePayoutMethodIn,
)
from app.services.bank_account_presenter import bank_account_details, bank_account_out
from app.services.bank_account_rules import COUNTRY_RULES
from app.services.bank_account_state import InvalidStateTransition
from app.services.bank_account_types import UnsupportedBankAccountTypeError, UnsupportedCountryError
from app.services.payout_method import (
    UpdatePayoutMethod,
    alive_bank_accounts,
    delete_all_bank_accounts,
    delete_bank_account,
    verify_bank_account,
)

router = APIRouter(prefix="/bank-accounts", tags=["bank-accounts"])


@router.get("/types", response_model=list[BankAccountTypeOut])
def list_types():
    return [
        {
            "type": r.type_name,
            "bank_account_type": r.bank_account_type,
            "countries": list(r.countries),
            "currency": r.currency,
            "permitted_params": list(r.permitted_params()),
        }
        for r in COUNTRY_RULES
    ]


@router.get("/active", response_model=BankAccountDetailsOut)
def active(s: Session = Depends(db), user: User = Depends(current_account)):
    return bank_account_details(s, user.id)


@router.get("", response_model=list[BankAccountOut])
def list_bank_accounts(s: Session = Depends(db), user: User = Depends(current_account)):
    return [bank_account_out(s, row) for row in alive_bank_accounts(s, user.id)]


@router.put("", response_model=BankAccountOut)
def update_payout_method(body: UpdatePayoutMethodIn, s: Session = Depends(db), user: User = Depends(current_account)):
    try:
        result = UpdatePayoutMethod(s, user, body.model_dump()).process()
    except (UnsupportedCountryError, UnsupportedBankAccountTypeError):
        raise HTTPException(status_code=400, detail="unsupported_country")
    except EncryptionKeyUnavailable:
        s.rollback()
        raise HTTPException(status_code=503, detail="encryption_unavailable")

    if not result.success:
        return JSONResponse(
            status_code=422,
            content={"error": result.error, "data": result.data, "messages": result.messages},
        )
    return bank_account_out(s, result.bank_account)


def _owned(s: Session, bank_account_id: int, user: User) -> BankAccount:
    row = s.execute(
        select(BankAccount).where(BankAccount.id == bank_account_id, BankAccount.user_id == user.id)
    ).scalar_one_or_none()
    if row is None or not row.alive:
        raise HTTPException(status_code=404, detail="bank_account_not_found")
    return row


@router.delete("/{bank_account_id}")
def delete(bank_account_id: int, s: Session = Depends(db), user: User = Depends(current_account)):
    row = _owned(s, bank_account_id, user)
    delete_bank_account(s, row, actor=user.username)
    return {"ok": True}


@router.delete("/users/{user_id}")
def close_user_bank_accounts(user_id: int, s: Session = Depends(db), admin=Depends(require_admin)):
    if s.get(User, user_id) is None:
        raise HTTPException(status_code=404, detail="user_not_found")
    return {"deleted": delete_all_bank_accounts(s, user_id, actor=admin.get("sub"))}


@router.post("/{bank_account_id}/verify", response_model=BankAccountOut)
def verify(bank_account_id: int, s: Session = Depends(db), admin=Depends(require_admin)):
    row = s.execute(select(BankAccount).where(BankAccount.id == bank_account_id)).scalar_one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="bank_account_not_found")
    try:
        verify_bank_account(s, row, actor=admin.get("sub"))
    except InvalidStateTransition:
        raise HTTPException(status_code=409, detail="bank_account_already_verified")
    return bank_account_out(s, row)
