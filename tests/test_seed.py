from taskboard.models import User
from taskboard.security import hash_password, verify_password
from taskboard.seed import ensure_admin_user


def test_password_roundtrip():
    h = hash_password("correct horse battery staple " * 4)
    assert verify_password("correct horse battery staple " * 4, h)
    assert not verify_password("wrong", h)
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_admin_bootstrap_is_idempotent(db):
    first = ensure_admin_user(db)
    second = ensure_admin_user(db)

    assert first.id == second.id
    assert db.query(User).count() == 1
