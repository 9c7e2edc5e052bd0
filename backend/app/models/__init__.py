from app.models.user import User
from app.models.bank import Bank
from app.models.bank_account import BankAccount
from app.models.payout import Payout
from app.models.audit_log import AuditLog

__all__ = ["User", "Bank", "BankAccount", "Payout", "AuditLog"]
