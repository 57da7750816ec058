# backend/timebank/routes/v1/catalog.py
"""
Catalog routes - API v1

Profiles, service listings and availability slots.

Endpoints:
    POST /profiles                       → Create the caller's profile (signup bonus applied)
    GET /profiles/me                     → Caller's profile
    GET /profiles/me/balance             → Caller's time-credit balance
    POST /services                       → List a new service (provider)
    PATCH /services/{service_id}         → Edit a listing (pricing locked once booked)
    POST /services/{service_id}/slots    → Publish a slot (provider)
    GET /services/{service_id}/slots     → Open future slots
    DELETE /slots/{slot_id}              → Remove an unbooked slot (provider)
"""

from fastapi import APIRouter, Body, Depends, Response, status

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import (
    get_availability_service,
    get_catalog_service,
    get_profile_service,
)
from ...core.exceptions import DomainException, ForbiddenException
from ...schemas.catalog import (
    BalanceResponse,
    ProfileCreate,
    ProfileResponse,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    SlotCreate,
    SlotListResponse,
    SlotResponse,
)
from ...services.availability_service import AvailabilityService
from ...services.catalog_service import CatalogService
from ...services.profile_service import ProfileService
from .errors import handle_domain_exception

router = APIRouter(tags=["catalog-v1"])


@router.post("/profiles", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_profile(
    payload: ProfileCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    try:
        if payload.user_id != current_user_id:
            raise ForbiddenException("You can only create your own profile")
        profile = service.create_profile(
            payload.user_id, payload.full_name, payload.email, bio=payload.bio
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ProfileResponse.model_validate(profile)


@router.get("/profiles/me", response_model=ProfileResponse)
def get_my_profile(
    current_user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    try:
        profile = service.get_profile(current_user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ProfileResponse.model_validate(profile)


@router.get("/profiles/me/balance", response_model=BalanceResponse)
def get_my_balance(
    current_user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> BalanceResponse:
    try:
        balance = service.get_balance(current_user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BalanceResponse(user_id=current_user_id, time_credits=balance)


@router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    try:
        listing = service.create_service(
            provider_id=current_user_id,
            title=payload.title,
            duration_hours=payload.duration_hours,
            credits_per_hour=payload.credits_per_hour,
            description=payload.description,
            category=payload.category,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ServiceResponse.model_validate(listing)


@router.patch("/services/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: str,
    payload: ServiceUpdate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    try:
        listing = service.update_service(
            service_id, current_user_id, payload.model_dump(exclude_unset=True)
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ServiceResponse.model_validate(listing)


@router.post(
    "/services/{service_id}/slots",
    response_model=SlotResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_slot(
    service_id: str,
    payload: SlotCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotResponse:
    try:
        slot = service.create_slot(current_user_id, service_id, payload.start_time, payload.end_time)
    except DomainException as e:
        handle_domain_exception(e)
    return SlotResponse.model_validate(slot)


@router.get("/services/{service_id}/slots", response_model=SlotListResponse)
def list_open_slots(
    service_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotListResponse:
    return SlotListResponse(
        slots=[SlotResponse.model_validate(s) for s in service.list_open_slots(service_id)]
    )


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        service.delete_slot(slot_id, current_user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
