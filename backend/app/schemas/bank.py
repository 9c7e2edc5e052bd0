from pydantic import BaseModel, field_validator
from datetime import datetime

class BankCreate(BaseModel):
    routing_number: str
    name: str

    @field_validator("routing_number")
    @classmethod
    def routing_trim(cls, v: str):
        return (v or "").strip()

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

class BankOut(BaseModel):
    id: int
    routing_number: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True
