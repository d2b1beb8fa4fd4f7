"""pm_pool REST API — trading pool deposit/trade/withdraw, leaderboard, config, vault.

Authentication is handled upstream; the acting user_id travels in the request.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.errors import PersistenceError
from src.pm_common.response import ApiResponse, success_response
from src.pm_pool.application.schemas import (
    DepositRequest,
    PoolConfigUpdateRequest,
    TradeRequest,
    WithdrawRequest,
)
from src.pm_pool.application.service import PoolSettlementService

router = APIRouter(prefix="/pool", tags=["pool"])

pool_service = PoolSettlementService()


def _respond(request: Request, data: object, message: str = "success") -> ApiResponse:
    resp = success_response(data, message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/config")
async def get_config(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.get_config(db)
    return _respond(request, data.model_dump())


@router.patch("/config")
async def update_config(
    body: PoolConfigUpdateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    ok = await pool_service.update_config(db, body.model_dump(exclude_none=True))
    if not ok:
        raise PersistenceError("Pool config could not be saved")
    data = await pool_service.get_config(db)
    return _respond(request, data.model_dump(), "Pool config updated")


@router.post("/deposit")
async def deposit(
    body: DepositRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.deposit(db, body.user_id, body.amount)
    return _respond(request, data.model_dump(), data.message)


@router.post("/trade")
async def trade(
    body: TradeRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.trade(db, body.user_id, body.direction)
    return _respond(request, data.model_dump(), data.message)


@router.post("/withdraw")
async def withdraw(
    body: WithdrawRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.withdraw(db, body.user_id)
    return _respond(request, data.model_dump(), data.message)


@router.get("/positions/{user_id}")
async def get_position(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.get_position(db, user_id)
    return _respond(request, data.model_dump() if data else None)


@router.get("/positions/{user_id}/withdrawal-preview")
async def preview_withdrawal(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.preview_withdrawal(db, user_id)
    return _respond(request, data.model_dump())


@router.get("/leaderboard")
async def leaderboard(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.leaderboard(db)
    return _respond(request, data.model_dump())


@router.post("/vault/distribute")
async def distribute_vault(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await pool_service.distribute_vault(db)
    return _respond(request, data.model_dump(), data.message)
