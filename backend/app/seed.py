import os
from sqlalchemy import select
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.account import Account
from app.core.security import hash_password

def main():
    identity = os.environ.get("SEED_ADMIN_IDENTITY", settings.admin_identity)
    password = os.environ.get("SEED_ADMIN_PASS", "admin123")

    db = SessionLocal()
    try:
        existing = db.execute(select(Account).where(Account.identity == identity)).scalar_one_or_none()
        if existing:
            return
        db.add(Account(identity=identity, password_hash=hash_password(password)))
        db.commit()
    finally:
        db.close()

if __name__ == "__main__":
    main()
