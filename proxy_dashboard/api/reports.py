"""Report and moderation table endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from proxy_dashboard.api.dependencies import get_moderation_board, get_report_board
from proxy_dashboard.proxy.rpc import ProxyError
from proxy_dashboard.reports.board import Board, ModerationBoard, ReportBoard
from proxy_dashboard.reports.sorting import UnknownSortField

router = APIRouter(prefix="/api", tags=["reports"])


def _sort(board: Board, field: str) -> dict:
    try:
        board.sort(field)
    except UnknownSortField:
        raise HTTPException(status_code=400, detail=f"Cannot sort by '{field}'")
    return board.payload()


async def _refresh(board: Board) -> dict:
    try:
        await board.load()
    except ProxyError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return board.payload()


@router.get("/reports")
async def list_reports(board: ReportBoard = Depends(get_report_board)):
    """Aggregated reports in their current sort order."""
    return board.payload()


@router.post("/reports/sort")
async def sort_reports(
    field: str = Query(..., min_length=1),
    board: ReportBoard = Depends(get_report_board),
):
    """Sort by `field`; repeating the active field flips the direction."""
    return _sort(board, field)


@router.post("/reports/refresh")
async def refresh_reports(board: ReportBoard = Depends(get_report_board)):
    """Re-fetch and re-aggregate the report list."""
    return await _refresh(board)


@router.get("/moderation")
async def list_moderation(board: ModerationBoard = Depends(get_moderation_board)):
    return board.payload()


@router.post("/moderation/sort")
async def sort_moderation(
    field: str = Query(..., min_length=1),
    board: ModerationBoard = Depends(get_moderation_board),
):
    return _sort(board, field)


@router.post("/moderation/refresh")
async def refresh_moderation(board: ModerationBoard = Depends(get_moderation_board)):
    return await _refresh(board)
