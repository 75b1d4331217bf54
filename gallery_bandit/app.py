"""FastAPI application exposing recommendation, reward and analytics endpoints."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator

from .catalog import InMemoryArmCatalog
from .config import AppConfig, load_config
from .context import get_current_context
from .errors import ArmNotFound, DimensionMismatch, InvalidActionKind
from .service import ContextualBanditService
from .types import ArmMetadata, BanditArm, BanditContext

CONFIG: AppConfig = load_config()


class ArmMetadataIn(BaseModel):
    medium: str = ""
    genre: str = ""
    price: float = 0.0
    colors: list[str] = Field(default_factory=list)
    artist_id: str | None = None
    popularity_score: float = Field(0.0, ge=0.0, le=1.0)
    recency_score: float = Field(0.0, ge=0.0, le=1.0)

    @field_validator("medium", "genre", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float:
        if value is None or value == "":
            return 0.0
        return value


class ArmIn(BaseModel):
    artwork_id: str = Field(..., min_length=1)
    metadata: ArmMetadataIn = Field(default_factory=ArmMetadataIn)

    def to_arm(self) -> BanditArm:
        return BanditArm(
            artwork_id=self.artwork_id,
            metadata=ArmMetadata(**self.metadata.model_dump()),
        )


class ContextIn(BaseModel):
    time_of_day: str | None = Field(None, pattern=r"^\d{1,2}:\d{2}$")
    day_of_week: str | None = None
    season: str | None = None
    recent_views: list[str] | None = None
    recent_searches: list[str] | None = None
    current_budget: float | None = Field(None, gt=0)
    session_duration: float | None = Field(None, ge=0)
    device_type: Literal["mobile", "desktop", "tablet"] | None = None

    def to_context(self, user_id: str) -> BanditContext:
        return get_current_context(user_id, **self.model_dump())


class RecommendationRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    candidates: list[ArmIn] = Field(default_factory=list)
    count: int | None = Field(None, ge=0, le=200)
    exploration_ratio: float | None = None
    context: ContextIn = Field(default_factory=ContextIn)


class RecommendationOut(BaseModel):
    artwork_id: str
    confidence: float
    reason: Literal["exploit", "explore"]
    expected_reward: float
    uncertainty: float
    features: list[float]
    low_confidence: bool = False


class RewardRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    artwork_id: str = Field(..., min_length=1)
    action: str
    context: ContextIn = Field(default_factory=ContextIn)
    features: list[float] | None = None
    reason: Literal["exploit", "explore"] | None = None


class RewardResponse(BaseModel):
    status: str
    reward: float
    pending: int


def _build_service() -> ContextualBanditService:
    return ContextualBanditService.from_config(CONFIG, catalog=InMemoryArmCatalog())


app = FastAPI(title="Gallery Bandit")
_service = _build_service()


@app.post("/recommendations", response_model=list[RecommendationOut])
async def recommendations(request: RecommendationRequest) -> list[RecommendationOut]:
    arms = [candidate.to_arm() for candidate in request.candidates]
    catalog = _service.catalog
    if isinstance(catalog, InMemoryArmCatalog):
        catalog.register(arms)

    context = request.context.to_context(request.user_id)
    count = CONFIG.recommendation_count if request.count is None else request.count
    ratio = (
        CONFIG.exploration_ratio
        if request.exploration_ratio is None
        else request.exploration_ratio
    )
    results = await _service.recommend(context, arms, count=count, exploration_ratio=ratio)
    return [RecommendationOut(**rec.to_dict()) for rec in results]


@app.post("/rewards", response_model=RewardResponse)
async def rewards(request: RewardRequest) -> RewardResponse:
    context = request.context.to_context(request.user_id)
    try:
        outcome = await _service.record_reward(
            request.user_id,
            request.artwork_id,
            request.action,
            context,
            features=request.features,
            reason=request.reason,
        )
    except (InvalidActionKind, DimensionMismatch) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ArmNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return RewardResponse(
        status=outcome.status, reward=outcome.reward.reward, pending=outcome.pending
    )


@app.get("/models/{user_id}")
async def model(user_id: str) -> dict[str, Any]:
    current = await _service.get_model(user_id)
    return current.to_dict()


@app.get("/analytics/{user_id}")
async def analytics(
    user_id: str, timeframe: Literal["day", "week", "month"] = "week"
) -> dict[str, Any]:
    result = await _service.get_bandit_analytics(user_id, timeframe)
    return result.to_dict()
