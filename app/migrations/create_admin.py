"""
Create the first ADMIN account

Admins can only be created by other admins through the API, so the first
one is bootstrapped here:
    ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD=Secret123 python -m app.migrations.create_admin
"""

import logging
import os
import sys

from dotenv import load_dotenv

from app.database import SessionLocal
from app.models.user import User, Role
from app.utils.security import hash_password

load_dotenv()
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)


def create_admin(email: str, password: str, name: str = "System Administrator") -> User:
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user:
            if user.role != Role.ADMIN:
                user.role = Role.ADMIN
                db.commit()
                logger.info(f"Promoted existing user {email} to ADMIN")
            else:
                logger.info(f"Admin {email} already exists")
            return user

        user = User(name=name, email=email, password_hash=hash_password(password), role=Role.ADMIN)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Created admin {email} (id={user.id})")
        return user
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_email or not admin_password:
        logger.error("ADMIN_EMAIL and ADMIN_PASSWORD must be set")
        sys.exit(1)
    create_admin(admin_email, admin_password, os.getenv("ADMIN_NAME", "System Administrator"))
