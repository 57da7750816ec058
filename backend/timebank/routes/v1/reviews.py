# backend/timebank/routes/v1/reviews.py
"""
Reviews routes - API v1

Endpoints:
    POST /                        → Submit a review for a completed booking (learner)
    PATCH /{review_id}            → Edit own review
    DELETE /{review_id}           → Delete own review
    GET /user/{user_id}           → Reviews received by a user (public)
"""

import logging

from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_review_service
from ...core.exceptions import DomainException
from ...schemas.review import (
    ReviewItem,
    ReviewListResponse,
    ReviewSubmitRequest,
    ReviewUpdateRequest,
)
from ...services.review_service import ReviewService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews-v1"])


@router.get("/user/{user_id}", response_model=ReviewListResponse)
def list_reviews_for_user(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    service: ReviewService = Depends(get_review_service),
) -> ReviewListResponse:
    reviews = service.list_for_reviewee(user_id, limit=limit)
    return ReviewListResponse(reviews=[ReviewItem.model_validate(r) for r in reviews])


@router.post("", response_model=ReviewItem, status_code=status.HTTP_201_CREATED)
def submit_review(
    payload: ReviewSubmitRequest = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewItem:
    """
    Submit a review for a completed booking.

    Learners can submit one review per booking.
    """
    try:
        review = service.submit_review(
            booking_id=payload.booking_id,
            reviewer_id=current_user_id,
            rating=payload.rating,
            comment=payload.comment,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ReviewItem.model_validate(review)


@router.patch("/{review_id}", response_model=ReviewItem)
def update_review(
    review_id: str,
    payload: ReviewUpdateRequest = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewItem:
    try:
        review = service.update_review(
            review_id, current_user_id, rating=payload.rating, comment=payload.comment
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ReviewItem.model_validate(review)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> Response:
    try:
        service.delete_review(review_id, current_user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
