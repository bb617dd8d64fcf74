#!/usr/bin/env python3
"""
Command-line access to the signal engine
========================================

Runs engine operations once against live Yahoo data and the configured store,
without starting the HTTP server.

Usage:
    # Train every configured symbol
    python scripts/run_engine.py train

    # Train one symbol
    python scripts/run_engine.py train --symbol EURUSD

    # Generate a 3-minute signal, optionally with a news headline for sentiment
    python scripts/run_engine.py signal --symbol EURJPY --duration 3
    python scripts/run_engine.py signal -s EURUSD --news "ECB signals strong growth"

    # Evaluate the prediction log
    python scripts/run_engine.py evaluate --symbol USDCHF
"""

import argparse
import asyncio
import logging
import os
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.clients import YahooFinanceClient
from app.config import get_settings
from app.risk_config import load_risk_settings
from app.services import LogNotifier, TradingBotEngine
from app.storage import create_store
from core.sentiment import analyze_sentiment

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def run_train(engine: TradingBotEngine, args) -> None:
    start_time = time.time()
    results = await engine.train_models(args.symbol)
    elapsed = time.time() - start_time

    print()
    print("-" * 60)
    print("Training complete")
    print("-" * 60)
    for symbol in [args.symbol] if args.symbol else engine.get_supported_symbols():
        history = results.get(symbol)
        if not history:
            print(f"  {symbol}: skipped (insufficient data)")
            continue
        last = history[-1]
        print(
            f"  {symbol}: {len(history)} epochs, loss={last.loss:.4f}, "
            f"acc={last.accuracy * 100:.1f}%, val_acc={last.validation_accuracy * 100:.1f}%"
        )
    print(f"\n  Elapsed: {elapsed:.1f}s\n")


async def run_signal(engine: TradingBotEngine, args) -> None:
    sentiment = analyze_sentiment(args.news) if args.news else None
    result = await engine.generate_trading_signal(args.symbol, args.duration, sentiment)

    print()
    print(f"Status: {result.status.value}")
    if sentiment is not None:
        print(f"Sentiment: {sentiment:+.2f}")
    if result.signal is None:
        if result.detail:
            print(f"Detail: {result.detail}")
        print()
        return

    signal = result.signal
    print(f"Direction: {signal.direction.value} ({signal.duration}m)")
    print(f"Confidence: {signal.confidence * 100:.1f}%")
    print(f"Entry: {signal.entry_price:.5f}")
    print(f"Stop loss: {signal.stop_loss:.5f}")
    print(f"Take profit: {signal.take_profit:.5f}")
    print("Reasoning:")
    for reason in signal.reasoning:
        print(f"  - {reason}")
    print()


async def run_evaluate(engine: TradingBotEngine, args) -> None:
    metrics = await engine.evaluate_model(args.symbol)
    print()
    for name, value in metrics.model_dump().items():
        print(f"  {name:>18}: {value}")
    print()


async def main():
    parser = argparse.ArgumentParser(
        description="Run signal engine operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    train = sub.add_parser("train", help="Train models")
    train.add_argument("--symbol", "-s", type=str, help="Symbol (default: all)")

    signal = sub.add_parser("signal", help="Generate a signal")
    signal.add_argument("--symbol", "-s", type=str, required=True)
    signal.add_argument("--duration", "-d", type=int, default=5, choices=(1, 3, 5))
    signal.add_argument("--news", type=str, help="Headline or article text for sentiment")

    evaluate = sub.add_parser("evaluate", help="Evaluate logged predictions")
    evaluate.add_argument("--symbol", "-s", type=str, required=True)

    args = parser.parse_args()
    if getattr(args, "symbol", None):
        args.symbol = args.symbol.upper()

    settings = get_settings()
    client = YahooFinanceClient(
        base_url=settings.yahoo_base_url,
        timeout=settings.request_timeout,
        requests_per_second=settings.requests_per_second,
    )
    store = await create_store(settings)
    engine = TradingBotEngine(
        provider=client,
        store=store,
        notifier=LogNotifier(),
        settings=settings,
        risk=load_risk_settings(settings.risk_config_path),
    )

    try:
        await engine.init()
        if args.command == "train":
            await run_train(engine, args)
        elif args.command == "signal":
            await run_signal(engine, args)
        else:
            await run_evaluate(engine, args)
    finally:
        await client.close()
        await store.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\nCancelled.")
        sys.exit(0)
