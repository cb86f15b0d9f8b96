"""cl_report REST API — on-demand card activity report."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.cl_common.database import get_db_session
from src.cl_common.response import ApiResponse, success_response
from src.cl_report.application.service import ReportApplicationService

router = APIRouter(prefix="/reports", tags=["reports"])

_service = ReportApplicationService()


def get_report_service() -> ReportApplicationService:
    return _service


class ReportLocation(BaseModel):
    key: str
    bucket: str
    url: str


@router.get("/cards/{card_id}")
async def get_report(
    card_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    svc: Annotated[ReportApplicationService, Depends(get_report_service)],
    request: Request,
    start: str = Query(..., description="Range start, ISO-8601"),
    end: str = Query(..., description="Range end, ISO-8601 (inclusive)"),
) -> ApiResponse:
    key, bucket = await svc.generate_report(db, card_id, start, end)
    data = ReportLocation(key=key, bucket=bucket, url=svc.public_url(key))
    return success_response(data.model_dump(), request)
