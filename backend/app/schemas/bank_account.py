from pydantic import BaseModel, Field
from datetime import datetime


class BankAccountParams(BaseModel):
    type: str | None = None
    country: str | None = Field(default=None, min_length=2, max_length=2)

    account_holder_full_name: str | None = None
    account_number: str | None = None
    account_number_confirmation: str | None = None
    account_type: str | None = None

    routing_number: str | None = None
    institution_number: str | None = None
    transit_number: str | None = None
    bsb_number: str | None = None
    sort_code: str | None = None
    clearing_code: str | None = None
    ifsc: str | None = None
    bank_code: str | None = None
    branch_code: str | None = None


class UpdatePayoutMethodIn(BaseModel):
    bank_account: BankAccountParams


class BankAccountOut(BaseModel):
    id: int
    type: str
    bank_account_type: str
    country: str
    currency: str
    state: str
    routing_number: str | None
    account_number: str
    account_holder_full_name: str
    account_type: str | None = None
    created_at: datetime | None = None
    deleted_at: datetime | None = None

    institution_number: str | None = None
    transit_number: str | None = None
    bsb_number: str | None = None
    sort_code: str | None = None
    clearing_code: str | None = None
    ifsc: str | None = None
    bank_code: str | None = None
    branch_code: str | None = None
    bank_name: str | None = None


class BankAccountHolderOut(BaseModel):
    account_holder_full_name: str


class BankAccountDetailsOut(BaseModel):
    show_bank_account: bool
    routing_number: str | None
    account_number_visual: str | None
    bank_account: BankAccountHolderOut | None


class BankAccountTypeOut(BaseModel):
    type: str
    bank_account_type: str
    countries: list[str]
    currency: str
    permitted_params: list[str]
