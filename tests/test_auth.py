import pytest
from sqlalchemy import select

from app.core.exceptions import AuthErrorMessage, ForbiddenError, UnauthorizedError, ValidationError
from app.models.audit_log import AuditLog, AuditAction
from app.models.user import RefreshToken
from app.services.auth_service import AuthService

PASSWORD = "motdepasse123"


def _login_audits(db_session):
    return db_session.scalars(select(AuditLog).where(AuditLog.action == AuditAction.LOGIN)).all()


def test_unverified_account_is_rejected_and_audited(db_session, make_user, ctx):
    pending = make_user(verified=False, validated=False)

    with pytest.raises(UnauthorizedError) as exc:
        AuthService(db_session).login(pending.email, PASSWORD, ctx)

    assert exc.value.detail == AuthErrorMessage.ACCOUNT_NOT_VERIFIED
    audits = _login_audits(db_session)
    assert len(audits) == 1
    assert audits[0].user_id == pending.id
    assert audits[0].new_state["success"] is False


def test_verified_but_inactive_account_is_rejected(db_session, make_user, ctx):
    pending = make_user(verified=True, validated=False)

    with pytest.raises(UnauthorizedError) as exc:
        AuthService(db_session).login(pending.email, PASSWORD, ctx)

    assert exc.value.detail == AuthErrorMessage.ACCOUNT_INACTIVE


def test_wrong_password_and_unknown_email(db_session, user, ctx):
    service = AuthService(db_session)

    with pytest.raises(UnauthorizedError) as exc:
        service.login(user.email, "mauvais-mot", ctx)
    assert exc.value.detail == AuthErrorMessage.INVALID_CREDENTIALS

    with pytest.raises(UnauthorizedError):
        service.login("inconnu@example.com", PASSWORD, ctx)

    audits = _login_audits(db_session)
    assert [a.user_id for a in audits] == [user.id, None]


def test_login_issues_tokens_and_records_session(db_session, user, ctx):
    token = AuthService(db_session).login(user.email.upper(), PASSWORD, ctx)

    assert token.token_type == "bearer"
    assert token.refresh_token
    stored = db_session.scalar(select(RefreshToken).where(RefreshToken.user_id == user.id))
    assert stored.ip_address == "127.0.0.1"
    assert stored.user_agent == "pytest"
    db_session.refresh(user)
    assert user.last_login is not None


def test_refresh_then_logout_revokes(db_session, user, ctx):
    service = AuthService(db_session)
    token = service.login(user.email, PASSWORD, ctx)

    refreshed = service.refresh(token.refresh_token, ctx)
    assert refreshed.access_token
    assert refreshed.refresh_token is None

    service.logout(token.refresh_token, ctx)
    with pytest.raises(ForbiddenError):
        service.refresh(token.refresh_token, ctx)
    with pytest.raises(ValidationError):
        service.logout("inconnu", ctx)


def test_verify_token_returns_claims(db_session, user, ctx):
    service = AuthService(db_session)
    token = service.login(user.email, PASSWORD, ctx)

    payload = service.verify_token(token.access_token)

    assert payload["sub"] == str(user.id)
    assert payload["role"] == user.role.value
    with pytest.raises(UnauthorizedError):
        service.verify_token(token.refresh_token)


def test_login_api_envelope(client, user):
    response = client.post("/api/v1/auth/login", json={"email": user.email, "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["data"]["token_type"] == "bearer"

    profile = client.get(
        "/api/v1/auth/profile", headers={"Authorization": f"Bearer {body['data']['access_token']}"}
    )
    assert profile.json()["data"]["email"] == user.email


def test_login_api_error_envelope(client, make_user):
    pending = make_user(verified=False, validated=False)

    response = client.post("/api/v1/auth/login", json={"email": pending.email, "password": PASSWORD})

    assert response.status_code == 401
    assert response.json() == {
        "status": "error",
        "message": AuthErrorMessage.ACCOUNT_NOT_VERIFIED,
        "data": None,
    }


def test_profile_requires_token(client):
    response = client.get("/api/v1/auth/profile")

    assert response.status_code == 401
    assert response.json()["status"] == "error"


def test_password_reset_flow(db_session, user, ctx, monkeypatch):
    from app.schemas.user import ResetPasswordRequest
    import app.services.auth_service as auth_module

    monkeypatch.setattr(auth_module, "generate_token", lambda: "jeton-fixe")
    service = AuthService(db_session)
    service.forgot_password(user.email, ctx)

    service.reset_password(
        ResetPasswordRequest(token="jeton-fixe", new_password="nouveau-mdp-1", confirm_password="nouveau-mdp-1"),
        ctx,
    )

    token = service.login(user.email, "nouveau-mdp-1", ctx)
    assert token.access_token
    with pytest.raises(ValidationError):
        service.reset_password(
            ResetPasswordRequest(token="jeton-fixe", new_password="autre-mdp-12", confirm_password="autre-mdp-12"),
            ctx,
        )
