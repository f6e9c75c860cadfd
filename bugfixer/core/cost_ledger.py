"""Cost ledger for model spend accounting

Holds the per-model price table, the pure pricing helpers and CostLedger,
the only shared mutable state of a fixing session. The ledger gates nothing
itself: can_afford() is advisory and callers check it before the expensive
call.
"""

import logging
import math
import threading
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, Optional

from bugfixer.core.data_types import BudgetCheck, BudgetState, CostReport


logger = logging.getLogger(__name__)

# USD per 1K tokens
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4": {"input": 0.03, "output": 0.06},
}

CHARS_PER_TOKEN = 4
DEFAULT_DAILY_LIMIT = 10.0
DEFAULT_PER_OPERATION_LIMIT = 2.0


def cheapest_model() -> str:
    return min(MODEL_PRICING, key=lambda m: MODEL_PRICING[m]["input"] + MODEL_PRICING[m]["output"])


def most_expensive_model() -> str:
    return max(MODEL_PRICING, key=lambda m: MODEL_PRICING[m]["input"] + MODEL_PRICING[m]["output"])


def model_pricing(model: str) -> Dict[str, float]:
    """Price entry for a model, falling back to the cheapest tier for unknown names"""
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        logger.debug(f"No pricing for model {model!r}, using {cheapest_model()} rates")
        pricing = MODEL_PRICING[cheapest_model()]
    return pricing


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """
    Calculate cost for token usage

    Args:
        model: Model name
        input_tokens: Prompt tokens
        output_tokens: Completion tokens

    Returns:
        Cost in USD
    """
    pricing = model_pricing(model)
    return (input_tokens / 1000) * pricing["input"] + (output_tokens / 1000) * pricing["output"]


def estimate_tokens(char_count: int) -> int:
    return math.ceil(char_count / CHARS_PER_TOKEN)


def estimate_fix_cost(model: str, input_size: int, max_output_tokens: int) -> float:
    """
    Estimate the cost of one fix before calling the model

    The whole output budget is assumed to be spent.

    Args:
        model: Model name
        input_size: Character count of the source sent to the model
        max_output_tokens: Generation limit

    Returns:
        Estimated cost in USD
    """
    return calculate_cost(model, estimate_tokens(input_size), max_output_tokens)


def format_cost(cost: float) -> str:
    return f"${cost:.4f}"


def requires_warning(cost: float, threshold: float = 1.0) -> bool:
    return cost >= threshold


def compare_model_costs(
    model_a: str, model_b: str, input_tokens: int, output_tokens: int
) -> Dict[str, object]:
    cost_a = calculate_cost(model_a, input_tokens, output_tokens)
    cost_b = calculate_cost(model_b, input_tokens, output_tokens)
    highest = max(cost_a, cost_b)
    return {
        "cheaper": model_a if cost_a < cost_b else model_b,
        "savings": abs(cost_a - cost_b),
        "percent_difference": round(abs(cost_a - cost_b) / highest * 100, 2) if highest else 0.0,
        "costs": {model_a: cost_a, model_b: cost_b},
    }


class CostLedger:
    """Thread-safe daily spend tracker

    Day rollover is detected lazily: every public call compares the clock's
    date with the stored reset date and zeroes the counters when they differ.
    """

    def __init__(
        self,
        daily_limit: float = DEFAULT_DAILY_LIMIT,
        per_operation_limit: float = DEFAULT_PER_OPERATION_LIMIT,
        clock: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize ledger

        Args:
            daily_limit: Maximum spend per calendar day
            per_operation_limit: Maximum estimated cost of a single operation
            clock: Returns today's date (date.today when None)
        """
        if daily_limit < 0 or per_operation_limit < 0:
            raise ValueError("Budget limits must be non-negative")
        self._clock = clock or date.today
        self._lock = threading.Lock()
        self._state = BudgetState(
            daily_spend=0.0,
            operation_count=0,
            last_reset_date=self._clock(),
            daily_limit=daily_limit,
            per_operation_limit=per_operation_limit,
        )

    @property
    def state(self) -> BudgetState:
        with self._lock:
            self._roll_over_if_new_day()
            return replace(self._state)

    def estimate(self, model: str, input_size: int, max_output_tokens: int) -> float:
        return estimate_fix_cost(model, input_size, max_output_tokens)

    def can_afford(self, estimated_cost: float) -> BudgetCheck:
        """
        Check whether an operation fits both budgets

        Args:
            estimated_cost: Estimated cost of the operation

        Returns:
            BudgetCheck with the verdict and the remaining daily budget
        """
        with self._lock:
            self._roll_over_if_new_day()
            state = self._state
            within_daily = state.daily_spend + estimated_cost <= state.daily_limit
            within_per_operation = estimated_cost <= state.per_operation_limit
            return BudgetCheck(
                allowed=within_daily and within_per_operation,
                within_daily=within_daily,
                within_per_operation=within_per_operation,
                estimated_cost=estimated_cost,
                daily_spend=state.daily_spend,
                remaining=state.daily_limit - state.daily_spend,
            )

    def record(self, actual_cost: float) -> CostReport:
        """
        Record spend for a completed operation

        Never rejects; the limits are enforced by callers through can_afford().

        Args:
            actual_cost: Non-negative cost in USD

        Returns:
            Report reflecting the new totals
        """
        if actual_cost < 0:
            raise ValueError(f"Cost must be non-negative, got {actual_cost}")
        with self._lock:
            self._roll_over_if_new_day()
            self._state.daily_spend += actual_cost
            self._state.operation_count += 1
            report = self._build_report()
        logger.debug(
            f"Recorded {format_cost(actual_cost)} "
            f"(daily {format_cost(report.daily_spend)}, ops {report.operation_count})"
        )
        return report

    def report(self) -> CostReport:
        with self._lock:
            self._roll_over_if_new_day()
            return self._build_report()

    def reset(self) -> None:
        with self._lock:
            self._zero(self._clock())

    def _build_report(self) -> CostReport:
        state = self._state
        count = state.operation_count
        return CostReport(
            daily_spend=state.daily_spend,
            daily_limit=state.daily_limit,
            remaining=state.daily_limit - state.daily_spend,
            operation_count=count,
            average_cost=state.daily_spend / count if count > 0 else 0.0,
            last_reset_date=state.last_reset_date,
        )

    def _roll_over_if_new_day(self) -> None:
        today = self._clock()
        if today != self._state.last_reset_date:
            logger.info(f"New day {today.isoformat()}, resetting daily spend")
            self._zero(today)

    def _zero(self, today: date) -> None:
        self._state.daily_spend = 0.0
        self._state.operation_count = 0
        self._state.last_reset_date = today
