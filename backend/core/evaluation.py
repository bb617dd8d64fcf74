"""Performance metrics over resolved predictions."""

import logging
from typing import Iterable

import numpy as np

from core.models import Direction, ModelMetrics, PredictionRecord

logger = logging.getLogger(__name__)

WIN_RETURN = 0.8  # Binary-option payout on a correct call
LOSS_RETURN = -1.0  # Stake lost on an incorrect call


class ModelEvaluator:
    """
    Scores a prediction log.

    Only records with an ``actual_outcome`` count. CALL is the positive class
    for precision and recall.
    """

    def evaluate(self, records: Iterable[PredictionRecord]) -> ModelMetrics:
        resolved = [r for r in records if r.is_resolved]
        if not resolved:
            return ModelMetrics()

        total = len(resolved)
        correct = sum(1 for r in resolved if r.is_correct)

        true_pos = sum(
            1 for r in resolved
            if r.prediction == Direction.CALL and r.actual_outcome == Direction.CALL
        )
        false_pos = sum(
            1 for r in resolved
            if r.prediction == Direction.CALL and r.actual_outcome == Direction.PUT
        )
        false_neg = sum(
            1 for r in resolved
            if r.prediction == Direction.PUT and r.actual_outcome == Direction.CALL
        )

        accuracy = correct / total
        precision = true_pos / (true_pos + false_pos) if true_pos + false_pos else 0.0
        recall = true_pos / (true_pos + false_neg) if true_pos + false_neg else 0.0
        f1 = 2 * precision * recall / (precision + recall) if precision + recall else 0.0

        returns = np.array([WIN_RETURN if r.is_correct else LOSS_RETURN for r in resolved])
        # All wins or all losses has zero variance
        std = float(np.std(returns)) if 0 < correct < total else 0.0
        sharpe = float(np.mean(returns)) / std if std > 0 else 0.0

        logger.debug(f"Evaluated {total} resolved predictions: accuracy={accuracy:.3f}")

        return ModelMetrics(
            accuracy=accuracy,
            precision=precision,
            recall=recall,
            f1_score=f1,
            sharpe_ratio=sharpe,
            win_rate=accuracy,
            total_trades=total,
            profitable_trades=correct,
        )
