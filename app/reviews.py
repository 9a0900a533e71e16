"""Salon reviews, accepted only from clients with a completed appointment."""
from __future__ import annotations

from flask import current_app

from .actors import Actor, Client
from .catalog import get_salon
from .errors import Forbidden, InvalidInput, InvalidReview
from .extensions import db
from .models import Appointment, Review


def create_review(actor: Actor, salon_id: int, rating, comment: str | None = None) -> Review:
    get_salon(salon_id=salon_id)
    if not isinstance(actor, Client):
        raise Forbidden("Only clients can review a salon")

    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidInput("rating must be an integer between 1 and 5")

    completed = Appointment.query.filter_by(
        salon_id=salon_id,
        client_id=actor.profile_id,
        status="completed",
    ).first()
    if completed is None:
        raise InvalidReview()

    review = Review(
        salon_id=salon_id,
        client_id=actor.profile_id,
        rating=rating,
        comment=(comment or "").strip() or None,
    )
    db.session.add(review)
    db.session.commit()
    current_app.logger.info("Review %s added to salon %s", review.review_id, salon_id)
    return review


def list_reviews(salon_id: int) -> list[Review]:
    get_salon(salon_id=salon_id)
    return (
        Review.query.filter_by(salon_id=salon_id)
        .order_by(Review.created_at.desc(), Review.review_id.desc())
        .all()
    )


def rating_summary(salon_id: int) -> dict[str, object]:
    reviews = Review.query.filter_by(salon_id=salon_id).all()
    total = len(reviews)
    average = round(sum(r.rating for r in reviews) / total, 1) if total else None
    return {"average_rating": average, "total_reviews": total}
