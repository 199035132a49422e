"""Integration tests for the /auth HTTP flow"""
import asyncio

import pytest
from fastapi import BackgroundTasks
from sqlalchemy import select
from starlette.requests import Request

from matrimony.api.v1.endpoints.auth_endpoints import forgot_password
from matrimony.core.config import settings
from matrimony.models.otp import FlowKind, OTPChallenge
from matrimony.schemas.auth_schemas import ForgotPasswordRequest
from matrimony.utils.helpers import utcnow

from conftest import PASSWORD

AUTH = f"{settings.API_V1_STR}/auth"


def _login(client, email="a@x.com", password=PASSWORD):
    return client.post(f"{AUTH}/login", json={"email": email, "password": password})


def _login_token(client, notifier, password=PASSWORD):
    ref = _login(client, password=password).json()["challenge_ref"]
    response = client.post(f"{AUTH}/verify-otp", json={"challenge_ref": ref, "code": notifier.last_code})
    assert response.status_code == 200
    return response.json()["access_token"]


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestRegister:
    def test_register_creates_account(self, client):
        response = client.post(f"{AUTH}/register", json={
            "email": "new@x.com", "password": "Welcome1!", "first_name": "Ravi", "last_name": "Iyer",
        })
        assert response.status_code == 201
        assert response.json()["account_code"]

    def test_duplicate_email_conflicts(self, client, account):
        response = client.post(f"{AUTH}/register", json={
            "email": "a@x.com", "password": "Welcome1!", "first_name": "Ravi", "last_name": "Iyer",
        })
        assert response.status_code == 409

    def test_weak_password_is_400(self, client):
        response = client.post(f"{AUTH}/register", json={
            "email": "new@x.com", "password": "weak", "first_name": "Ravi", "last_name": "Iyer",
        })
        assert response.status_code == 400

    def test_malformed_body_is_400(self, client):
        response = client.post(f"{AUTH}/register", json={"email": "not-an-email"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Validation error"


class TestLogin:
    def test_login_issues_challenge(self, client, account, notifier, db):
        """Scenario A"""
        before = utcnow()
        response = _login(client)

        assert response.status_code == 200
        body = response.json()
        assert body["expires_in"] == settings.OTP_LOGIN_EXPIRE_MINUTES * 60

        challenge = db.get(OTPChallenge, body["challenge_ref"])
        assert challenge.consumed is False
        assert challenge.flow_kind == FlowKind.LOGIN
        ttl = challenge.expires_at - before
        assert abs(ttl.total_seconds() - settings.OTP_LOGIN_EXPIRE_MINUTES * 60) < 30

        assert len(notifier.sent) == 1
        assert notifier.sent[0]["email"] == "a@x.com"

    def test_login_never_returns_the_code(self, client, account, notifier):
        response = _login(client)
        assert notifier.last_code not in response.text

    def test_bad_credentials_are_indistinguishable(self, client, account, notifier):
        unknown = _login(client, email="nobody@x.com")
        wrong = _login(client, password="Wrong1!pass")

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert notifier.sent == []

    def test_delivery_failure_is_500(self, client, account, notifier):
        notifier.fail = True
        response = _login(client)
        assert response.status_code == 500
        assert "try again" in response.json()["detail"]

    def test_relogin_invalidates_previous_code(self, client, account, notifier):
        first_ref = _login(client).json()["challenge_ref"]
        first_code = notifier.last_code
        _login(client)

        response = client.post(f"{AUTH}/verify-otp", json={"challenge_ref": first_ref, "code": first_code})
        assert response.status_code == 401


class TestVerifyOtp:
    def test_verify_returns_token_once(self, client, account, notifier):
        """Scenario B"""
        ref = _login(client).json()["challenge_ref"]
        payload = {"challenge_ref": ref, "code": notifier.last_code}

        response = client.post(f"{AUTH}/verify-otp", json=payload)
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert body["account"]["account_code"] == account.account_code

        again = client.post(f"{AUTH}/verify-otp", json=payload)
        assert again.status_code == 401
        assert again.json()["detail"] == "Invalid or expired OTP"

    def test_wrong_code_keeps_challenge_usable(self, client, account, notifier, db):
        """Scenario C"""
        ref = _login(client).json()["challenge_ref"]
        code = notifier.last_code
        wrong = "0" * len(code) if code != "0" * len(code) else "1" * len(code)

        response = client.post(f"{AUTH}/verify-otp", json={"challenge_ref": ref, "code": wrong})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired OTP"
        assert db.get(OTPChallenge, ref).consumed is False

        response = client.post(f"{AUTH}/verify-otp", json={"challenge_ref": ref, "code": code})
        assert response.status_code == 200

    def test_expired_code_looks_like_wrong_code(self, client, account, notifier, db):
        ref = _login(client).json()["challenge_ref"]
        challenge = db.get(OTPChallenge, ref)
        challenge.expires_at = utcnow()
        db.commit()

        response = client.post(f"{AUTH}/verify-otp", json={"challenge_ref": ref, "code": notifier.last_code})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired OTP"

    def test_token_grants_access_to_me(self, client, account, notifier):
        token = _login_token(client, notifier)
        response = client.get(f"{AUTH}/me", headers=_bearer(token))
        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"
        assert response.json()["last_login"] is not None

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer garbage"}])
    def test_me_requires_valid_token(self, client, headers):
        assert client.get(f"{AUTH}/me", headers=headers).status_code == 401


class TestChangePassword:
    def test_change_password(self, client, account, notifier):
        token = _login_token(client, notifier)
        response = client.post(
            f"{AUTH}/change-password",
            json={"current_password": PASSWORD, "new_password": "NewPass1!"},
            headers=_bearer(token),
        )
        assert response.status_code == 200
        assert _login(client, password="NewPass1!").status_code == 200
        assert _login(client).status_code == 401

    def test_wrong_current_password_keeps_hash(self, client, account, notifier, db):
        token = _login_token(client, notifier)
        before = account.hashed_password

        response = client.post(
            f"{AUTH}/change-password",
            json={"current_password": "Wrong1!pass", "new_password": "NewPass1!"},
            headers=_bearer(token),
        )
        assert response.status_code == 401
        db.refresh(account)
        assert account.hashed_password == before

    def test_weak_new_password_is_400(self, client, account, notifier):
        token = _login_token(client, notifier)
        response = client.post(
            f"{AUTH}/change-password",
            json={"current_password": PASSWORD, "new_password": "weak"},
            headers=_bearer(token),
        )
        assert response.status_code == 400

    def test_requires_token(self, client, account):
        response = client.post(
            f"{AUTH}/change-password",
            json={"current_password": PASSWORD, "new_password": "NewPass1!"},
        )
        assert response.status_code == 401


class TestPasswordReset:
    def test_forgot_password_shape_does_not_reveal_account(self, client, account, notifier):
        known = client.post(f"{AUTH}/forgot-password", json={"email": "a@x.com"})
        unknown = client.post(f"{AUTH}/forgot-password", json={"email": "nobody@x.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json().keys() == unknown.json().keys()
        assert known.json()["message"] == unknown.json()["message"]
        assert known.json()["expires_in"] == unknown.json()["expires_in"]
        assert len(notifier.sent) == 1

    def test_forgot_password_delivery_failure_still_200(self, client, account, notifier):
        notifier.fail = True
        response = client.post(f"{AUTH}/forgot-password", json={"email": "a@x.com"})
        assert response.status_code == 200

    def test_forgot_password_answers_before_sending_code(self, db, account, notifier):
        tasks = BackgroundTasks()
        request = Request({"type": "http", "headers": [], "client": ("10.0.0.1", 4321)})

        response = forgot_password(ForgotPasswordRequest(email="a@x.com"), request, tasks, db=db, notifier=notifier)

        assert notifier.sent == []
        assert len(tasks.tasks) == 1

        asyncio.run(tasks())
        assert [m["email"] for m in notifier.sent] == ["a@x.com"]
        assert notifier.sent[0]["flow_kind"] == FlowKind.PASSWORD_RESET

        challenge = db.get(OTPChallenge, response.challenge_ref)
        assert challenge.ip_address == "10.0.0.1"

    def test_forgot_password_unknown_email_queues_nothing(self, db, account, notifier):
        tasks = BackgroundTasks()
        request = Request({"type": "http", "headers": [], "client": ("10.0.0.1", 4321)})

        forgot_password(ForgotPasswordRequest(email="nobody@x.com"), request, tasks, db=db, notifier=notifier)

        assert tasks.tasks == []

    def test_reset_password_flow(self, client, account, notifier):
        """Scenario D"""
        ref = client.post(f"{AUTH}/forgot-password", json={"email": "a@x.com"}).json()["challenge_ref"]
        payload = {"challenge_ref": ref, "code": notifier.last_code, "new_password": "NewPass1!"}

        response = client.post(f"{AUTH}/reset-password", json=payload)
        assert response.status_code == 200

        assert _login(client, password="NewPass1!").status_code == 200
        assert _login(client).status_code == 401

        again = client.post(f"{AUTH}/reset-password", json=payload)
        assert again.status_code == 400
        assert again.json()["detail"] == "Invalid or expired OTP"

    def test_unknown_email_reference_cannot_reset(self, client, account):
        ref = client.post(f"{AUTH}/forgot-password", json={"email": "nobody@x.com"}).json()["challenge_ref"]
        response = client.post(
            f"{AUTH}/reset-password",
            json={"challenge_ref": ref, "code": "123456", "new_password": "NewPass1!"},
        )
        assert response.status_code == 400

    def test_login_code_cannot_reset_password(self, client, account, notifier, db):
        ref = _login(client).json()["challenge_ref"]
        response = client.post(
            f"{AUTH}/reset-password",
            json={"challenge_ref": ref, "code": notifier.last_code, "new_password": "NewPass1!"},
        )
        assert response.status_code == 400
        assert db.execute(select(OTPChallenge.consumed).where(OTPChallenge.id == ref)).scalar_one() is False


class TestApiKey:
    def test_api_key_enforced_when_configured(self, client, account, monkeypatch):
        monkeypatch.setattr(settings, "API_KEY", "k" * 24)

        assert _login(client).status_code == 401
        response = client.post(
            f"{AUTH}/login",
            json={"email": "a@x.com", "password": PASSWORD},
            headers={"X-API-Key": "k" * 24},
        )
        assert response.status_code == 200


def test_health(client):
    assert client.get("/health").json()["status"] == "OK"
