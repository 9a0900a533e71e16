"""HTTP tests for the notification inbox."""
from __future__ import annotations

from app.lifecycle import transition_appointment
from app.models import Notification


def test_get_notifications_paginated(client, seed, auth, make_appointment):
    appointment_id = make_appointment(status="pending")
    transition_appointment(seed.owner, appointment_id, "confirmed")
    transition_appointment(seed.owner, appointment_id, "completed")

    response = client.get(
        f"/profiles/{seed.client_id}/notifications?limit=1", headers=auth(seed.client_id)
    )
    data = response.get_json()

    assert response.status_code == 200
    assert len(data["notifications"]) == 1
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    assert data["unread_count"] == 2


def test_cannot_read_someone_elses_notifications(client, seed, auth):
    response = client.get(f"/profiles/{seed.client_id}/notifications", headers=auth(seed.other_client_id))
    assert response.status_code == 403


def test_invalid_pagination_400(client, seed, auth):
    response = client.get(
        f"/profiles/{seed.client_id}/notifications?page=abc", headers=auth(seed.client_id)
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_parameters"


def test_mark_notification_read(client, seed, auth, make_appointment):
    appointment_id = make_appointment(status="pending")
    transition_appointment(seed.owner, appointment_id, "confirmed")
    notification = Notification.query.filter_by(profile_id=seed.client_id).one()

    forbidden = client.put(f"/notifications/{notification.notification_id}/read", headers=auth(seed.owner_id))
    response = client.put(f"/notifications/{notification.notification_id}/read", headers=auth(seed.client_id))

    assert forbidden.status_code == 403
    assert response.status_code == 200
    assert response.get_json()["notification"]["is_read"] is True

    read_all = client.put(f"/profiles/{seed.client_id}/notifications/read-all", headers=auth(seed.client_id))
    assert read_all.get_json()["updated"] == 0
