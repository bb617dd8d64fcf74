"""REST API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from app.services.notifier import LogNotifier, Notification
from app.services.trading_engine import TradingBotEngine, TrainingInProgressError
from core.models import Bar, Direction, ModelMetrics, Signal, SignalStatus
from core.sentiment import analyze_sentiment

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class SignalResponse(BaseModel):
    """Signal generation response model."""

    status: SignalStatus
    signal: Optional[Signal] = None
    detail: Optional[str] = None


class EpochMetrics(BaseModel):
    """One epoch of training metrics."""

    epoch: int
    loss: float
    accuracy: float
    validation_loss: float
    validation_accuracy: float
    learning_rate: float


class TrainingResponse(BaseModel):
    """Training run response model."""

    trained: dict[str, list[EpochMetrics]]
    skipped: list[str]


class TrainingStatus(BaseModel):
    """Training status response."""

    is_training: bool
    history: dict[str, list[EpochMetrics]]


class OutcomeRequest(BaseModel):
    """Outcome backfill request model."""

    timestamp: int
    actual: Direction


class OutcomeResponse(BaseModel):
    updated: bool


# Dependency for the engine (set on app.state by the lifespan handler)
def get_engine(request: Request) -> TradingBotEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def get_notifier(request: Request) -> LogNotifier:
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        raise HTTPException(status_code=503, detail="Notifier not initialized")
    return notifier


def _check_symbol(engine: TradingBotEngine, symbol: str) -> None:
    if symbol not in engine.get_supported_symbols():
        raise HTTPException(status_code=400, detail=f"Unsupported symbol: {symbol}")


@router.get("/symbols", response_model=list[str])
async def get_symbols(engine: TradingBotEngine = Depends(get_engine)):
    """Get supported symbols."""
    return engine.get_supported_symbols()


@router.get("/market/{symbol}", response_model=Bar)
async def get_market_data(symbol: str, engine: TradingBotEngine = Depends(get_engine)):
    """Get the latest bar for a symbol."""
    _check_symbol(engine, symbol)
    bar = await engine.get_market_data(symbol)
    if bar is None:
        raise HTTPException(status_code=503, detail=f"Market data unavailable for {symbol}")
    return bar


@router.post("/signals/{symbol}", response_model=SignalResponse)
async def generate_signal(
    symbol: str,
    duration: int = Query(5, description="Option expiry in minutes (1, 3 or 5)"),
    sentiment: Optional[float] = Query(None, ge=-1.0, le=1.0, description="News sentiment"),
    news: Optional[str] = Query(None, description="News text scored for sentiment"),
    engine: TradingBotEngine = Depends(get_engine),
):
    """Generate a trading signal.

    Sentiment comes either as a score or as news text, not both.
    """
    _check_symbol(engine, symbol)
    if news is not None:
        if sentiment is not None:
            raise HTTPException(status_code=400, detail="Pass either sentiment or news, not both")
        sentiment = analyze_sentiment(news)

    try:
        result = await engine.generate_trading_signal(symbol, duration, sentiment)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result.status == SignalStatus.DATA_UNAVAILABLE:
        raise HTTPException(status_code=503, detail=result.detail)
    if result.status == SignalStatus.FAILED:
        raise HTTPException(status_code=500, detail=result.detail)

    return SignalResponse(status=result.status, signal=result.signal, detail=result.detail)


@router.post("/train", response_model=TrainingResponse)
async def train_models(
    symbol: Optional[str] = Query(None, description="Train one symbol (default: all)"),
    engine: TradingBotEngine = Depends(get_engine),
):
    """Train models. Fails with 409 while another training run is active."""
    if symbol is not None:
        _check_symbol(engine, symbol)

    try:
        results = await engine.train_models(symbol)
    except TrainingInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    requested = [symbol] if symbol else engine.get_supported_symbols()
    return TrainingResponse(
        trained={
            sym: [EpochMetrics(**m.to_dict()) for m in history]
            for sym, history in results.items()
        },
        skipped=[s for s in requested if s not in results],
    )


@router.get("/training/status", response_model=TrainingStatus)
async def get_training_status(engine: TradingBotEngine = Depends(get_engine)):
    """Get training flag and last-run history per symbol."""
    return TrainingStatus(
        is_training=engine.is_model_training(),
        history={
            sym: [EpochMetrics(**m.to_dict()) for m in engine.get_training_history(sym)]
            for sym in engine.get_supported_symbols()
        },
    )


@router.get("/evaluate/{symbol}", response_model=ModelMetrics)
async def evaluate_model(symbol: str, engine: TradingBotEngine = Depends(get_engine)):
    """Get performance metrics over resolved predictions."""
    _check_symbol(engine, symbol)
    return await engine.evaluate_model(symbol)


@router.post("/outcomes/{symbol}", response_model=OutcomeResponse)
async def record_outcome(
    symbol: str,
    request: OutcomeRequest,
    engine: TradingBotEngine = Depends(get_engine),
):
    """Backfill the realized direction of a logged prediction."""
    _check_symbol(engine, symbol)
    updated = await engine.record_outcome(symbol, request.timestamp, request.actual)
    if not updated:
        raise HTTPException(
            status_code=404,
            detail=f"No prediction for {symbol} at {request.timestamp}",
        )
    return OutcomeResponse(updated=True)


@router.get("/notifications", response_model=list[Notification])
async def get_notifications(notifier: LogNotifier = Depends(get_notifier)):
    """Get delivered notifications, newest first."""
    return notifier.get_history()


@router.post("/notifications/read", response_model=list[Notification])
async def mark_notifications_read(notifier: LogNotifier = Depends(get_notifier)):
    """Mark every notification as read."""
    notifier.mark_all_read()
    return notifier.get_history()


@router.delete("/notifications", status_code=204)
async def clear_notifications(notifier: LogNotifier = Depends(get_notifier)):
    """Clear notification history."""
    notifier.clear_history()
