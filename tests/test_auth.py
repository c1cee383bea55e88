import time
import uuid
from types import SimpleNamespace

import pytest
from jose import jwt
from supabase import AuthError

from app.core.config import get_settings
from app.services.auth_service import FORGOT_PASSWORD_MESSAGE

AUTH = "/api/v1/auth"
HOOK = f"{AUTH}/hooks/send-email"


class FakeAuth:
    """Stands in for the Supabase auth client."""

    def __init__(self, session=None, error: AuthError | None = None):
        self.session = session
        self.error = error
        self.calls: list[tuple] = []

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    def sign_up(self, credentials):
        self.calls.append(("sign_up", credentials))
        self._maybe_fail()
        user = SimpleNamespace(id=str(uuid.uuid4()), email=credentials["email"])
        return SimpleNamespace(user=user, session=self.session)

    def sign_in_with_password(self, credentials):
        self.calls.append(("sign_in", credentials))
        self._maybe_fail()
        return SimpleNamespace(user=None, session=None)

    def reset_password_for_email(self, email, options):
        self.calls.append(("reset", email, options))
        self._maybe_fail()


@pytest.fixture
def fake_auth(monkeypatch):
    def _install(**kwargs) -> FakeAuth:
        auth = FakeAuth(**kwargs)
        monkeypatch.setattr(
            "app.services.auth_service.supabase_public",
            lambda: SimpleNamespace(auth=auth),
        )
        return auth

    return _install


@pytest.fixture
def sent_emails(monkeypatch):
    sent: list[dict] = []
    monkeypatch.setattr(
        "app.services.email_service.send_email", lambda **kwargs: sent.append(kwargs)
    )
    return sent


def hook_payload(action: str = "signup", **email_data) -> dict:
    return {
        "user": {"email": "new@example.com"},
        "email_data": {"email_action_type": action, "token_hash": "abc123", **email_data},
    }


# -------- Send email hook --------


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer wrong-secret"}],
)
def test_hook_rejects_bad_secret(client, sent_emails, headers):
    resp = client.post(HOOK, json=hook_payload(), headers=headers)

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid hook secret"
    assert sent_emails == []


def test_hook_sends_verification_email(client, sent_emails):
    resp = client.post(
        HOOK,
        json=hook_payload("signup", redirect_to="/account"),
        headers={"Authorization": "Bearer test-hook-secret"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"message": "Email sent"}
    assert len(sent_emails) == 1
    mail = sent_emails[0]
    assert mail["to_email"] == "new@example.com"
    assert mail["subject"] == "Verify your email address"
    link = f"{get_settings().APP_URL}/verify-email?token_hash=abc123&type=signup&next=%2Faccount"
    assert link in mail["text_body"]
    assert link in mail["html_body"]


def test_hook_sends_recovery_email(client, sent_emails):
    resp = client.post(
        HOOK,
        json=hook_payload("recovery"),
        headers={"Authorization": "Bearer test-hook-secret"},
    )

    assert resp.status_code == 200
    assert sent_emails[0]["subject"] == "Reset your password"
    assert "/reset-password?token_hash=abc123&type=recovery" in sent_emails[0]["text_body"]


def test_hook_rejects_unknown_action(client, sent_emails):
    resp = client.post(
        HOOK,
        json=hook_payload("magiclink"),
        headers={"Authorization": "Bearer test-hook-secret"},
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Unsupported email action: magiclink"
    assert sent_emails == []


# -------- Supabase-backed flows --------


def test_forgot_password_answer_never_changes(client, fake_auth):
    auth = fake_auth()
    resp = client.post(f"{AUTH}/forgot-password", json={"email": "someone@example.com"})

    assert resp.status_code == 200
    assert resp.json() == {"message": FORGOT_PASSWORD_MESSAGE}
    _, email, options = auth.calls[0]
    assert email == "someone@example.com"
    assert options == {"redirect_to": f"{get_settings().APP_URL}/reset-password"}

    fake_auth(error=AuthError("rate limited", "over_email_send_rate_limit"))
    resp = client.post(f"{AUTH}/forgot-password", json={"email": "someone@example.com"})
    assert resp.json() == {"message": FORGOT_PASSWORD_MESSAGE}


def test_sign_up_awaiting_verification(client, fake_auth):
    auth = fake_auth(session=None)

    resp = client.post(
        f"{AUTH}/sign-up",
        json={"email": "new@example.com", "password": "long-enough", "name": " Zara "},
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "user": None,
        "email_verification_required": True,
        "cart_merged": False,
    }
    _, credentials = auth.calls[0]
    assert credentials["options"] == {"data": {"name": "Zara"}}
    assert "auth_session" not in resp.cookies


def test_sign_up_with_immediate_session(client, fake_auth):
    access_token = jwt.encode(
        {"sub": str(uuid.uuid4()), "exp": int(time.time()) + 3600},
        get_settings().SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )
    fake_auth(session=SimpleNamespace(access_token=access_token, expires_in=3600))

    resp = client.post(
        f"{AUTH}/sign-up",
        json={"email": "fresh@example.com", "password": "long-enough", "name": "Zara"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["email_verification_required"] is False
    assert body["user"]["email"] == "fresh@example.com"
    assert body["user"]["name"] == "Zara"
    assert body["user"]["role"] == "user"
    assert resp.cookies.get("auth_session") == access_token


def test_sign_up_error_is_reported(client, fake_auth):
    fake_auth(error=AuthError("User already registered", "user_already_exists"))

    resp = client.post(
        f"{AUTH}/sign-up", json={"email": "taken@example.com", "password": "long-enough"}
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "User already registered"


def test_sign_up_validates_password_length(client, fake_auth):
    auth = fake_auth()

    resp = client.post(f"{AUTH}/sign-up", json={"email": "a@example.com", "password": "short"})

    assert resp.status_code == 422
    assert "password" in resp.json()["field_errors"]
    assert auth.calls == []


def test_sign_in_failures_are_unauthorized(client, fake_auth):
    fake_auth(error=AuthError("Invalid login credentials", "invalid_credentials"))
    resp = client.post(f"{AUTH}/sign-in", json={"email": "a@example.com", "password": "x"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid login credentials"

    fake_auth()
    resp = client.post(f"{AUTH}/sign-in", json={"email": "a@example.com", "password": "x"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"


def test_session_cookie_authenticates_until_sign_out(client, make_user, auth_headers, monkeypatch):
    user = make_user()
    access_token = auth_headers(user)["Authorization"].split(" ", 1)[1]

    class SignInAuth:
        def sign_in_with_password(self, credentials):
            return SimpleNamespace(
                user=SimpleNamespace(id=str(user.id), email=user.email),
                session=SimpleNamespace(access_token=access_token, expires_in=3600),
            )

    monkeypatch.setattr(
        "app.services.auth_service.supabase_public",
        lambda: SimpleNamespace(auth=SignInAuth()),
    )
    resp = client.post(f"{AUTH}/sign-in", json={"email": user.email, "password": "pw"})
    assert resp.status_code == 200
    assert resp.json()["cart_merged"] is False

    me = client.get("/api/v1/users/me")
    assert me.status_code == 200
    assert me.json()["id"] == str(user.id)

    resp = client.post(f"{AUTH}/sign-out")
    assert resp.json() == {"message": "Signed out"}
    assert client.get("/api/v1/users/me").status_code == 401


def test_expired_token_is_rejected(client, make_user):
    user = make_user()
    expired = jwt.encode(
        {"sub": str(user.id), "email": user.email, "exp": int(time.time()) - 10},
        get_settings().SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )

    resp = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {expired}"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid or expired token"
