import logging
from uuid import uuid4

from sqlalchemy.orm import Session
from .config import settings
from .models import User
from .security import hash_password

log = logging.getLogger("taskboard.seed")


def ensure_admin_user(db: Session) -> User:
    """Bootstrap an admin user.

    Defaults:
      ADMIN_EMAIL=admin@local
      ADMIN_PASSWORD=admin
      ADMIN_NAME=Admin

    If ADMIN_UPDATE=1, an existing bootstrap admin is updated to match the env vars.
    """
    desired_email = settings.admin_email.strip().lower()

    # Prefer finding the desired email first
    user = db.query(User).filter(User.email == desired_email).first()

    # Fallback: the default bootstrap user if the email was never changed
    default_user = db.query(User).filter(User.email == "admin@local").first()

    if user is None and default_user is None:
        user = User(
            id=str(uuid4()),
            email=desired_email,
            name=settings.admin_name,
            password_hash=hash_password(settings.admin_password),
        )
        db.add(user)
        db.commit()
        log.info("created admin user %s", desired_email)
        return user

    # One-time migration of the default user onto the desired email
    if user is None and settings.admin_update:
        default_user.email = desired_email
        default_user.name = settings.admin_name
        default_user.password_hash = hash_password(settings.admin_password)
        db.commit()
        log.info("migrated bootstrap admin to %s", desired_email)
        return default_user

    if user is not None and settings.admin_update:
        user.name = settings.admin_name
        user.password_hash = hash_password(settings.admin_password)
        db.commit()
        log.info("updated admin user %s", desired_email)
        return user

    return user or default_user
