"""Automatic ETS and ARIMA model selection by AICc.

Both searches are explicit loops over a bounded candidate space so that
the visited candidates, their order and the tie-breaks are reproducible:
the lowest AICc wins; AICc values within ``AICC_TOLERANCE`` of each other
go to the candidate with fewer estimated parameters, and after that to the
candidate evaluated first.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from itertools import product
from typing import Any

import numpy as np
import pandas as pd

from passenger_forecast.core.config import ArimaSearchSpace, SIGNIFICANCE_LEVEL
from passenger_forecast.core.types import ArimaSpec, EtsSpec
from passenger_forecast.services.estimators import estimate_arima, estimate_ets
from passenger_forecast.services.stationarity import (
    suggested_differencing_order,
    suggested_seasonal_differencing_order,
)

logger = logging.getLogger(__name__)

AICC_TOLERANCE = 1e-8

# (dp, dq, dP, dQ) moves tried around the current best model, seasonal first
STEPWISE_MOVES = [
    (0, 0, -1, 0),
    (0, 0, 1, 0),
    (0, 0, 0, -1),
    (0, 0, 0, 1),
    (0, 0, -1, -1),
    (0, 0, 1, 1),
    (-1, 0, 0, 0),
    (1, 0, 0, 0),
    (0, -1, 0, 0),
    (0, 1, 0, 0),
    (-1, -1, 0, 0),
    (1, 1, 0, 0),
    (-1, 1, 0, 0),
    (1, -1, 0, 0),
]


@dataclass
class Candidate:
    key: tuple
    spec: Any
    result: Any
    aicc: float
    n_params: int
    position: int

    def beats(self, other: "Candidate | None") -> bool:
        if other is None:
            return True
        if self.aicc < other.aicc - AICC_TOLERANCE:
            return True
        if abs(self.aicc - other.aicc) <= AICC_TOLERANCE:
            if self.n_params != other.n_params:
                return self.n_params < other.n_params
            return self.position < other.position
        return False


@dataclass
class _Tracker:
    deadline: float | None
    trace: list[dict[str, Any]] = field(default_factory=list)
    best: Candidate | None = None

    def check_deadline(self) -> None:
        if self.deadline is not None and time.perf_counter() > self.deadline:
            raise TimeoutError(f"model search exceeded its time budget after {len(self.trace)} candidates")

    def record(self, key: tuple, spec, fit) -> Candidate | None:
        position = len(self.trace)
        try:
            result = fit()
        except Exception as ex:
            self.trace.append({"model": spec.label, "aicc": float("nan"), "error": f"{type(ex).__name__}: {ex}"})
            return None
        aicc = float(result.aicc)
        self.trace.append({"model": spec.label, "aicc": aicc, "error": None})
        if not np.isfinite(aicc):
            return None
        cand = Candidate(key, spec, result, aicc, len(np.asarray(result.params)), position)
        if cand.beats(self.best):
            self.best = cand
        return cand


def auto_ets(
    train: pd.Series,
    spec: EtsSpec,
    maxiter: int = 200,
    deadline: float | None = None,
):
    """Fit every admissible ETS combination left open by ``spec`` and keep the best."""
    errors = [spec.error] if spec.error else ["A", "M"]
    trends = [spec.trend] if spec.trend else ["N", "A", "Ad"]
    seasons = [spec.season] if spec.season else ["N", "A", "M"]
    positive = bool((train > 0).all())
    restrict = spec.error is None or spec.season is None
    tracker = _Tracker(deadline)

    for error, trend, season in product(errors, trends, seasons):
        candidate = EtsSpec(error=error, trend=trend, season=season, period=spec.period)
        if not positive and "M" in (error, season):
            tracker.trace.append({"model": candidate.label, "aicc": float("nan"), "error": "needs positive data"})
            continue
        if restrict and error == "A" and season == "M":
            continue
        if season != "N" and len(train) < 2 * spec.period:
            tracker.trace.append({"model": candidate.label, "aicc": float("nan"), "error": "fewer than two seasons"})
            continue
        tracker.check_deadline()
        tracker.record(
            (error, trend, season),
            candidate,
            lambda c=candidate: estimate_ets(train, c.error, c.trend, c.season, c.period, maxiter),
        )

    if tracker.best is None:
        raise ValueError("no ETS candidate could be fitted")
    logger.debug("auto ETS selected %s (AICc=%.2f)", tracker.best.spec.label, tracker.best.aicc)
    return tracker.best.result, tracker.best.spec, tracker.trace


def arima_differencing(train: pd.Series, period: int, alpha: float = SIGNIFICANCE_LEVEL) -> tuple[int, int]:
    """Seasonal then ordinary differencing orders, as used by the order search."""
    values = np.asarray(train, dtype=float)
    D = suggested_seasonal_differencing_order(values, period=period) if period > 1 else 0
    if D:
        values = values[period:] - values[:-period]
    d = suggested_differencing_order(values, alpha=alpha)
    return d, D


def _within(space: ArimaSearchSpace, seasonal: bool, p: int, q: int, P: int, Q: int) -> bool:
    if min(p, q, P, Q) < 0:
        return False
    if p > space.max_p or q > space.max_q or P > space.max_P or Q > space.max_Q:
        return False
    if not seasonal and (P or Q):
        return False
    return p + q + P + Q <= space.max_order


def auto_arima(
    train: pd.Series,
    spec: ArimaSpec,
    space: ArimaSearchSpace | None = None,
    maxiter: int = 200,
    deadline: float | None = None,
    alpha: float = SIGNIFICANCE_LEVEL,
):
    """Search ARIMA orders by AICc with fixed, test-chosen differencing.

    ``spec.search`` picks the strategy: "stepwise" (Hyndman-Khandakar) or
    "exhaustive" (every order within ``space``).
    """
    space = space or ArimaSearchSpace()
    m = spec.period
    seasonal = m > 1 and len(train) > 2 * m
    d, D = arima_differencing(train, m if seasonal else 1, alpha)
    if not seasonal:
        D = 0
    allow_constant = d + D < 2
    if spec.include_constant is not None:
        constants = [spec.include_constant]
    else:
        constants = [True, False] if allow_constant else [False]

    tracker = _Tracker(deadline)
    evaluated: dict[tuple, Candidate | None] = {}

    def evaluate(p: int, q: int, P: int, Q: int, constant: bool) -> Candidate | None:
        key = (p, q, P, Q, constant)
        if key in evaluated:
            return evaluated[key]
        tracker.check_deadline()
        candidate = ArimaSpec(order=(p, d, q), seasonal_order=(P, D, Q), include_constant=constant, period=m)
        evaluated[key] = tracker.record(
            key,
            candidate,
            lambda: estimate_arima(train, (p, d, q), (P, D, Q), m, constant, maxiter),
        )
        return evaluated[key]

    search = spec.search or "stepwise"
    if search == "exhaustive":
        for constant in constants:
            for p, q, P, Q in product(
                range(space.max_p + 1),
                range(space.max_q + 1),
                range(space.max_P + 1),
                range(space.max_Q + 1),
            ):
                if _within(space, seasonal, p, q, P, Q):
                    evaluate(p, q, P, Q, constant)
    elif search == "stepwise":
        constant = constants[0]
        starts = [
            (space.start_p, space.start_q, space.start_P, space.start_Q),
            (0, 0, 0, 0),
            (1, 0, 1, 0),
            (0, 1, 0, 1),
        ]
        for p, q, P, Q in starts:
            p, q = min(p, space.max_p), min(q, space.max_q)
            P, Q = (min(P, space.max_P), min(Q, space.max_Q)) if seasonal else (0, 0)
            if _within(space, seasonal, p, q, P, Q):
                evaluate(p, q, P, Q, constant)

        steps = 0
        improved = tracker.best is not None
        while improved and steps < space.max_steps:
            improved = False
            p, q, P, Q, constant = tracker.best.key
            neighbours = [(p + a, q + b, P + c, Q + e, constant) for a, b, c, e in STEPWISE_MOVES]
            if len(constants) > 1:
                neighbours.append((p, q, P, Q, not constant))
            for key in neighbours:
                if key in evaluated or not _within(space, seasonal, *key[:4]):
                    continue
                previous = tracker.best
                evaluate(*key)
                steps += 1
                if tracker.best is not previous:
                    improved = True
                    break
                if steps >= space.max_steps:
                    break
    else:
        raise ValueError(f"Unknown ARIMA search '{search}'; use 'stepwise' or 'exhaustive'")

    if tracker.best is None:
        raise ValueError("no ARIMA candidate could be fitted")
    logger.debug(
        "auto ARIMA (%s) selected %s (AICc=%.2f) after %d candidates",
        search,
        tracker.best.spec.label,
        tracker.best.aicc,
        len(tracker.trace),
    )
    return tracker.best.result, tracker.best.spec, tracker.trace
