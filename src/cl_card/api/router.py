"""cl_card REST API — card lifecycle and balance operations."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.cl_card.application.schemas import (
    ActivateCardRequest,
    CardResponse,
    CreateCardRequest,
    PayCreditRequest,
    PurchaseRequest,
    SaveBalanceRequest,
    TransactionResponse,
)
from src.cl_card.application.service import CardApplicationService
from src.cl_common.database import get_db_session
from src.cl_common.response import ApiResponse, success_response

router = APIRouter(tags=["cards"])

_service = CardApplicationService()


def get_card_service() -> CardApplicationService:
    return _service


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CardService = Annotated[CardApplicationService, Depends(get_card_service)]


@router.post("/cards")
async def create_card(
    body: CreateCardRequest, db: DbSession, svc: CardService, request: Request
) -> ApiResponse:
    card = await svc.create_card(db, body.user_id, body.request)
    data = CardResponse.from_domain(card).model_dump(mode="json")
    return success_response(data, request)


@router.post("/cards/activate")
async def activate_card(
    body: ActivateCardRequest, db: DbSession, svc: CardService, request: Request
) -> ApiResponse:
    card = await svc.activate_card(db, body.user_id)
    data = CardResponse.from_domain(card).model_dump(mode="json")
    return success_response(data, request)


@router.get("/cards/{card_id}")
async def get_card(
    card_id: str, db: DbSession, svc: CardService, request: Request
) -> ApiResponse:
    card = await svc.get_card(db, card_id)
    data = CardResponse.from_domain(card).model_dump(mode="json")
    return success_response(data, request)


@router.post("/transactions/purchase")
async def purchase(
    body: PurchaseRequest, db: DbSession, svc: CardService, request: Request
) -> ApiResponse:
    tx = await svc.purchase(db, body.card_id, body.merchant, body.amount)
    data = TransactionResponse.from_domain(tx).model_dump(mode="json")
    return success_response(data, request)


@router.post("/transactions/save/{card_id}")
async def save(
    card_id: str,
    body: SaveBalanceRequest,
    db: DbSession,
    svc: CardService,
    request: Request,
) -> ApiResponse:
    tx = await svc.save(db, card_id, body.merchant, body.amount)
    data = TransactionResponse.from_domain(tx).model_dump(mode="json")
    return success_response(data, request)


@router.post("/cards/{card_id}/pay")
async def pay_credit_card(
    card_id: str,
    body: PayCreditRequest,
    db: DbSession,
    svc: CardService,
    request: Request,
) -> ApiResponse:
    tx = await svc.pay_credit_card(db, card_id, body.merchant, body.amount)
    data = TransactionResponse.from_domain(tx).model_dump(mode="json")
    return success_response(data, request)
