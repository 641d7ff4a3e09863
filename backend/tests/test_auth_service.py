import pytest

from retailpos.models import LoginHistory, User
from retailpos.services import auth_service
from retailpos.services.auth_service import PasswordValidationError
from retailpos.validation import ValidationError


@pytest.mark.parametrize("password", ["short1", "onlyletters", "12345678", None])
def test_weak_passwords_are_rejected(password):
    with pytest.raises(PasswordValidationError):
        auth_service.validate_password_strength(password)


def test_hash_and_verify(app):
    hashed = auth_service.hash_password("Password123")
    assert hashed.startswith("$2")
    assert auth_service.verify_password("Password123", hashed)
    assert not auth_service.verify_password("Password124", hashed)
    assert not auth_service.verify_password("Password123", "not-a-bcrypt-hash")
    assert not auth_service.verify_password("", hashed)


def test_create_user(db_session):
    user = auth_service.create_user(
        "storekeeper1", "Stock1234", email="stock@store.test", full_name="Omar", role="storekeeper",
    )
    assert user.id is not None
    assert user.role == "storekeeper"
    assert user.password_hash != "Stock1234"


def test_create_user_rejects_duplicates(db_session, cashier):
    with pytest.raises(ValueError, match="already exists"):
        auth_service.create_user("cashier", "Password123")
    with pytest.raises(ValueError, match="already exists"):
        auth_service.create_user("someone", "Password123", email="cashier@store.test")


def test_create_user_rejects_unknown_role(db_session):
    with pytest.raises(ValidationError):
        auth_service.create_user("owner", "Password123", role="owner")


@pytest.mark.parametrize(
    "user_agent, expected",
    [
        (None, None),
        ("Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) Mobile/15E148", "mobile"),
        ("Mozilla/5.0 (iPad; CPU OS 16_0 like Mac OS X)", "tablet"),
        ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0", "desktop"),
        ("PosTerminal/2.1 (Custom) Agent/3", "Agent/3"),
    ],
)
def test_detect_device(user_agent, expected):
    assert auth_service.detect_device(user_agent) == expected


def test_successful_login_is_recorded(db_session, cashier):
    user = auth_service.authenticate(
        "cashier", "Password123", ip_address="10.0.0.5", user_agent="Mozilla/5.0 (X11; Linux x86_64)",
    )
    assert user is not None
    assert user.last_login is not None

    history = auth_service.login_history_for(cashier.id)
    assert [(h.status, h.ip_address, h.device) for h in history] == [("success", "10.0.0.5", "desktop")]


def test_failed_login_is_recorded(db_session, cashier):
    assert auth_service.authenticate("cashier", "wrong-pass1") is None
    assert [h.status for h in auth_service.login_history_for(cashier.id)] == ["failed"]


def test_unknown_username_is_recorded_without_user(db_session):
    assert auth_service.authenticate("ghost", "Password123", ip_address="10.0.0.9") is None

    entry = db_session.query(LoginHistory).one()
    assert entry.user_id is None
    assert entry.status == "failed"


def test_inactive_user_cannot_log_in(db_session, make_user):
    make_user("former", is_active=False)
    assert auth_service.authenticate("former", "Password123") is None
    assert db_session.query(User).filter_by(username="former").one().last_login is None
