from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select
from app.api.deps import db, current_user, require_admin
from app.schemas.bank import BankCreate, BankOut
from app.models.bank import Bank
from app.services.audit import log_event
from app.services.checksums import aba_routing_number_valid

router = APIRouter(prefix="/banks", tags=["banks"])

@router.get("/{routing_number}", response_model=BankOut)
def get_bank(routing_number: str, s: Session = Depends(db), u=Depends(current_user)):
    b = s.execute(select(Bank).where(Bank.routing_number == routing_number.strip())).scalar_one_or_none()
    if not b:
        raise HTTPException(status_code=404, detail="bank_not_found")
    return b

@router.post("", response_model=BankOut)
def create_bank(body: BankCreate, s: Session = Depends(db), u=Depends(require_admin)):
    if not aba_routing_number_valid(body.routing_number):
        raise HTTPException(status_code=400, detail="routing_number_invalid")

    exists = s.execute(select(Bank).where(Bank.routing_number == body.routing_number)).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="bank_exists")

    b = Bank(routing_number=body.routing_number, name=body.name)
    s.add(b)
    s.commit()
    s.refresh(b)

    log_event(
        s,
        actor=u.get("sub"),
        action="bank.create",
        entity_type="bank",
        entity_id=b.id,
        details={"routing_number": b.routing_number, "name": b.name},
    )
    return b
