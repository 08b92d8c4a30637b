from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from .db import get_db
from .errors import AuthRequiredError
from .models import User

SESSION_KEY = "user_id"

def get_current_user(request: Request, db: Session) -> Optional[User]:
    user_id = request.session.get(SESSION_KEY)
    if not user_id:
        return None
    return db.get(User, user_id)

def require_user(request: Request, db: Session) -> User:
    user = get_current_user(request, db)
    if not user:
        raise AuthRequiredError("Authentication required")
    return user

def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    # resolved as a dependency, so it runs before the request body is validated
    return require_user(request, db)

def login_user(request: Request, user: User) -> None:
    request.session[SESSION_KEY] = user.id

def logout_user(request: Request) -> None:
    request.session.pop(SESSION_KEY, None)
