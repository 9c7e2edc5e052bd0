import os
from sqlalchemy import select
from app.db.session import SessionLocal
from app.models.user import User
from app.models.bank import Bank
from app.core.security import hash_password

# well-known routing numbers so ACH accounts display a bank name out of the box
DIRECTORY = {
    "021000021": "JPMorgan Chase Bank",
    "026009593": "Bank of America",
    "121000248": "Wells Fargo Bank",
}

def main():
    username = os.environ.get("SEED_ADMIN_USER", "admin")
    password = os.environ.get("SEED_ADMIN_PASS", "admin123")

    db = SessionLocal()
    try:
        existing = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
        if not existing:
            db.add(User(username=username, password_hash=hash_password(password), role="admin"))

        known = set(db.execute(select(Bank.routing_number)).scalars().all())
        for routing_number, name in DIRECTORY.items():
            if routing_number not in known:
                db.add(Bank(routing_number=routing_number, name=name))
        db.commit()
    finally:
        db.close()

if __name__ == "__main__":
    main()
