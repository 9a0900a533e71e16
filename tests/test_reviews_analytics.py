"""Tests for reviews and salon/platform analytics."""
from __future__ import annotations

import pytest

from app.analytics import platform_summary, salon_summary
from app.errors import Forbidden, InvalidInput, InvalidReview
from app.reviews import create_review, list_reviews, rating_summary


def test_review_requires_completed_appointment(app, seed, make_appointment):
    make_appointment(status="confirmed")
    with pytest.raises(InvalidReview):
        create_review(seed.client, seed.salon_id, 5, "Great")

    make_appointment(status="completed")
    review = create_review(seed.client, seed.salon_id, 5, "  Great  ")

    assert review.comment == "Great"
    assert [r.review_id for r in list_reviews(seed.salon_id)] == [review.review_id]


@pytest.mark.parametrize("rating", [0, 6, "5", True, 4.5])
def test_review_rating_must_be_one_to_five(app, seed, make_appointment, rating):
    make_appointment(status="completed")
    with pytest.raises(InvalidInput):
        create_review(seed.client, seed.salon_id, rating)


def test_only_clients_review(app, seed, make_appointment):
    make_appointment(status="completed")
    with pytest.raises(Forbidden):
        create_review(seed.owner, seed.salon_id, 4)


def test_rating_summary(app, seed, make_appointment):
    assert rating_summary(seed.salon_id) == {"average_rating": None, "total_reviews": 0}

    make_appointment(status="completed", client_id=seed.client_id)
    make_appointment(status="completed", client_id=seed.other_client_id)
    create_review(seed.client, seed.salon_id, 5)
    create_review(seed.other_client, seed.salon_id, 4)

    assert rating_summary(seed.salon_id) == {"average_rating": 4.5, "total_reviews": 2}


def test_create_review_route(client, seed, auth, make_appointment):
    make_appointment(status="completed")

    response = client.post(
        f"/salons/{seed.salon_id}/reviews",
        json={"rating": 4, "comment": "Nice cut"},
        headers=auth(seed.client_id),
    )
    assert response.status_code == 201
    assert response.get_json()["review"]["client_name"] == "Carla Client"

    listed = client.get(f"/salons/{seed.salon_id}/reviews").get_json()
    assert listed["total_reviews"] == 1


def test_salon_summary(app, seed, make_appointment):
    make_appointment(status="completed")
    make_appointment(status="completed")
    make_appointment(status="confirmed")
    make_appointment(status="cancelled")

    summary = salon_summary(seed.owner, seed.salon_id)

    assert summary["total_appointments"] == 4
    assert summary["by_status"] == {"pending": 0, "confirmed": 1, "cancelled": 1, "completed": 2}
    assert summary["revenue"] == 100.0
    assert summary["expected_revenue"] == 150.0
    assert summary["average_ticket"] == 50.0
    assert summary["top_services"] == [
        {"service_id": seed.service_id, "name": "Haircut", "revenue": 150.0, "count": 3}
    ]


def test_salon_summary_access(app, seed):
    assert salon_summary(seed.super_admin, seed.salon_id)["total_appointments"] == 0
    with pytest.raises(Forbidden):
        salon_summary(seed.other_owner, seed.salon_id)
    with pytest.raises(Forbidden):
        salon_summary(seed.client, seed.salon_id)


def test_platform_summary(app, seed, make_appointment):
    make_appointment(status="completed")
    make_appointment(status="completed", salon_id=2, service_id=2)

    summary = platform_summary(seed.super_admin)

    assert summary == {
        "total_tenants": 2,
        "active_tenants": 2,
        "completed_appointments": 2,
        "total_revenue": 70.0,
    }
    with pytest.raises(Forbidden):
        platform_summary(seed.owner)


def test_platform_stats_route(client, seed, auth):
    assert client.get("/admin/platform-stats", headers=auth(seed.super_admin_id)).status_code == 200
    assert client.get("/admin/platform-stats", headers=auth(seed.owner_id)).status_code == 403
