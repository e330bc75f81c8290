"""Leaderboard endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bigpicture.api.dependencies import get_db
from bigpicture.services.leaderboard import LeaderboardService

router = APIRouter(prefix="/api", tags=["leaderboard"])


class CriterionResponse(BaseModel):
    status: str
    value: str


class LeaderboardMovie(BaseModel):
    title: str
    price: int
    boxOffice: CriterionResponse
    oscar: CriterionResponse
    metacritic: CriterionResponse
    points: int | None


class LeaderboardEntry(BaseModel):
    """One ranked player."""

    rank: int
    name: str
    spent: int
    left: int
    points: int
    movies: list[LeaderboardMovie]


def get_leaderboard_service(db: AsyncSession = Depends(get_db)) -> LeaderboardService:
    return LeaderboardService(db)


# Declared before /auctions/{auction_id} so "latest" is not parsed as an id
@router.get("/auctions/latest/leaderboard", response_model=list[LeaderboardEntry])
async def latest_auction_leaderboard(
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """Leaderboard for the most recent auction."""
    board = await service.for_latest_auction()
    if board is None:
        raise HTTPException(status_code=404, detail="No auctions found")
    return board


@router.get("/auctions/{auction_id}/leaderboard", response_model=list[LeaderboardEntry])
async def auction_leaderboard(
    auction_id: int,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """Leaderboard for one auction cycle."""
    board = await service.for_auction(auction_id)
    if board is None:
        raise HTTPException(status_code=404, detail="Auction not found")
    return board


@router.get("/leaderboard/{year}", response_model=list[LeaderboardEntry])
async def yearly_leaderboard(
    year: int,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """Leaderboard across every auction cycle of a year."""
    return await service.for_year(year)
