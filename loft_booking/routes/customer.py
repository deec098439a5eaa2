import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from loft_booking.dependencies.services import get_connection, get_session_registry
from loft_booking.schemas.booking import CustomerView, PrepaidPackageView, PrepayOfferView
from loft_booking.services.cards import CardForm, SavedCardDisplay, validate_card_form
from loft_booking.services.exceptions import ServiceError
from loft_booking.services.presentation import (
    build_customer_view,
    build_prepaid_view,
    build_prepay_offer_view,
)
from loft_booking.services.registry import Connection, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=CustomerView)
async def get_profile(
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        profile = await connection.client.get_customer(connection.token)
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return build_customer_view(profile, registry.now())


@router.get("/prepaid", response_model=List[PrepaidPackageView])
async def list_prepaid(
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        packages = await connection.client.list_prepay_service_customers(connection.token)
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    now = registry.now()
    return [build_prepaid_view(package, now) for package in packages]


@router.get("/prepaid/offers", response_model=List[PrepayOfferView])
async def list_prepay_offers(connection: Connection = Depends(get_connection)):
    try:
        services = await connection.client.list_prepay_services(connection.token)
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [build_prepay_offer_view(service) for service in services]


@router.get("/cards", response_model=List[SavedCardDisplay])
async def list_cards(connection: Connection = Depends(get_connection)):
    return connection.cards.load_all()


@router.post("/cards", response_model=SavedCardDisplay)
async def save_card(
    form: CardForm,
    connection: Connection = Depends(get_connection),
    registry: SessionRegistry = Depends(get_session_registry),
):
    problem = validate_card_form(form, registry.now().date())
    if problem is not None:
        raise HTTPException(status_code=422, detail=problem)
    card = connection.cards.save_from_form(form)
    logger.info("Saved %s card ending %s", card.card_type, card.last4)
    return card


@router.delete("/cards/{last4}")
async def delete_card(last4: str, connection: Connection = Depends(get_connection)):
    connection.cards.delete(last4)
    return {"deleted": last4}
