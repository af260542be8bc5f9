from datetime import datetime, timedelta

from sqlalchemy import select

from app.core.database import SessionLocal
from app.models.job import JobQueue, JobStatus
from app.services.notification_service import NotificationService, hub, user_room, ADMIN_ROOM
from app.services.outbox_service import OutboxService, outbox_handler


def test_notify_user_is_persisted_and_pushed_after_commit(db_session, user):
    received = []
    hub.subscribe(user_room(user.id), lambda event, payload: received.append((event, payload)))
    service = NotificationService(db_session)

    service.notify_user(user.id, "Titre", "Message")
    assert received == []

    db_session.commit()
    delivered = OutboxService(db_session).dispatch_pending()

    assert delivered == 1
    assert received[0][0] == "notification"
    assert received[0][1]["title"] == "Titre"
    assert received[0][1]["user_id"] == user.id


def test_admin_alert_goes_to_admin_room(db_session):
    received = []
    hub.subscribe(ADMIN_ROOM, lambda event, payload: received.append(payload))

    NotificationService(db_session).notify_all_admins("Alerte", "Quelque chose", {"k": 1})
    db_session.commit()
    OutboxService(db_session).dispatch_pending()

    assert received[0]["type"] == "ADMIN_ALERT"
    assert received[0]["data"] == {"k": 1}


def test_rolled_back_notification_is_never_delivered(db_session, user):
    received = []
    hub.subscribe(user_room(user.id), lambda event, payload: received.append(payload))

    NotificationService(db_session).notify_user(user.id, "Titre", "Message")
    db_session.rollback()

    assert OutboxService(db_session).dispatch_pending() == 0
    assert received == []


def test_failed_delivery_is_retried_with_backoff(db_session):
    calls = []

    @outbox_handler("test.flaky")
    def flaky(payload):
        calls.append(payload)
        raise RuntimeError("indisponible")

    outbox = OutboxService(db_session)
    job = outbox.enqueue("test.flaky", {"n": 1})
    db_session.commit()

    assert outbox.dispatch_pending() == 0
    db_session.refresh(job)
    assert job.status == JobStatus.PENDING.value
    assert job.attempts == 1
    assert job.last_error == "indisponible"
    assert job.run_at.replace(tzinfo=None) > datetime.utcnow() + timedelta(seconds=20)

    # Pas encore échu : rien n'est relivré
    assert outbox.dispatch_pending() == 0
    assert len(calls) == 1


def test_job_fails_after_max_attempts(db_session):
    @outbox_handler("test.broken")
    def broken(payload):
        raise RuntimeError("cassé")

    outbox = OutboxService(db_session)
    job = outbox.enqueue("test.broken", {})
    job.max_attempts = 2
    db_session.commit()

    outbox.dispatch_pending()
    job.run_at = datetime.utcnow() - timedelta(seconds=1)
    db_session.commit()
    outbox.dispatch_pending()

    db_session.refresh(job)
    assert job.status == JobStatus.FAILED.value
    assert job.attempts == 2


def test_subscriber_error_does_not_leak_to_caller(db_session, user):
    def boom(event, payload):
        raise RuntimeError("socket fermé")

    hub.subscribe(user_room(user.id), boom)
    NotificationService(db_session).notify_user(user.id, "Titre", "Message")
    db_session.commit()

    assert OutboxService(db_session).dispatch_pending() == 0
    job = db_session.scalar(select(JobQueue).where(JobQueue.kind == "notification.user"))
    assert job.attempts == 1


def test_job_is_delivered_once_when_two_dispatchers_overlap(db_session, user):
    received = []
    concurrent = []

    def on_push(event, payload):
        received.append(payload)
        if concurrent:
            return
        # Un second dispatcher démarre pendant la livraison du premier
        with SessionLocal() as other:
            concurrent.append(OutboxService(other).dispatch_pending())

    hub.subscribe(user_room(user.id), on_push)
    NotificationService(db_session).notify_user(user.id, "Titre", "Message")
    db_session.commit()

    assert OutboxService(db_session).dispatch_pending() == 1
    assert concurrent == [0]
    assert len(received) == 1
    job = db_session.scalar(select(JobQueue).where(JobQueue.kind == "notification.user"))
    assert job.status == JobStatus.COMPLETED.value
    assert job.attempts == 0


def test_notifications_api_list_and_mark_read(client, db_session, user, auth_headers):
    service = NotificationService(db_session)
    first = service.notify_user(user.id, "Un", "Premier")
    service.notify_user(user.id, "Deux", "Second")
    db_session.commit()

    listing = client.get("/api/v1/notifications/", headers=auth_headers(user))
    assert listing.json()["total"] == 2

    read = client.patch(f"/api/v1/notifications/{first.id}/read", headers=auth_headers(user))
    assert read.json()["data"]["is_read"] is True


def test_mark_read_of_foreign_notification_is_not_found(client, db_session, user, make_user, auth_headers):
    other = make_user()
    notification = NotificationService(db_session).notify_user(other.id, "Privé", "Message")
    db_session.commit()

    response = client.patch(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers(user))

    assert response.status_code == 404


def test_audit_sessions_endpoint_returns_own_logs(client, make_user):
    member = make_user()
    client.post("/api/v1/auth/login", json={"email": member.email, "password": "motdepasse123"})
    token = client.post(
        "/api/v1/auth/login", json={"email": member.email, "password": "motdepasse123"}
    ).json()["data"]["access_token"]

    response = client.get("/api/v1/audit/get-all-sessions", headers={"Authorization": f"Bearer {token}"})

    body = response.json()
    assert body["total"] == 2
    assert all(entry["action"] == "LOGIN" for entry in body["data"])
