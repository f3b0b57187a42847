"""
Analytics over the transaction store.

Per-processor metrics are computed from stored transactions on every call.
The 24-hour time series is simulated traffic for the dashboard: a random base
per processor shaped by a day/night activity multiplier. It does not read the
store.
"""
import random
from datetime import datetime, timedelta
from decimal import Decimal, localcontext
from typing import Any, Callable, Dict, List, Optional, Sequence

from .models import Outcome, ProcessorId
from .store import TransactionStore

HOURS_IN_SERIES = 24
NOON = 12

OVERNIGHT_MULTIPLIER = 0.25
EVENING_MULTIPLIER = 0.35
PEAK_MULTIPLIER = 1.0

# Working precision for revenue sums; MAX_AMOUNT-sized amounts stay exact
REVENUE_PRECISION = 60
CENT = Decimal("0.01")


def activity_multiplier(hour: int) -> float:
    """
    Traffic multiplier for an hour of the day.

    Four segments: low overnight (0-5), linear morning ramp (6-8), business
    peak (9-16), linear evening decline (17-23).
    """
    if hour < 6:
        return OVERNIGHT_MULTIPLIER
    if hour < 9:
        step = (PEAK_MULTIPLIER - OVERNIGHT_MULTIPLIER) / 3
        return OVERNIGHT_MULTIPLIER + step * (hour - 5)
    if hour < 17:
        return PEAK_MULTIPLIER
    step = (PEAK_MULTIPLIER - EVENING_MULTIPLIER) / 7
    return PEAK_MULTIPLIER - step * (hour - 16)


def rotate_to_noon(points: Sequence[Any], hours: Sequence[int]) -> List[Any]:
    """
    Rotate a series so the point nearest to noon lands on index 12.

    Args:
        points: Series to rotate
        hours: Hour of day for each point, aligned with ``points``

    Returns:
        List: Rotated copy of the series (wrapping around)
    """
    if not points:
        return []
    best = min(range(len(hours)), key=lambda i: abs(hours[i] - NOON))
    shift = (best - NOON) % len(points)
    return list(points[shift:]) + list(points[:shift])


def _local_now() -> datetime:
    return datetime.now().astimezone()


class AnalyticsEngine:
    """
    Computes dashboard statistics.

    Args:
        store: Transaction store to aggregate
        base_min: Lower bound of the random base value
        base_max: Upper bound of the random base value
        floor: Lowest value a series point may report
        ceiling: Highest value a series point may report
        center_noon: Rotate the series around the noon point
        rng: Random source (injectable for tests)
        clock: Returns the current, timezone-aware local time
    """

    def __init__(
        self,
        store: TransactionStore,
        base_min: int = 900,
        base_max: int = 4500,
        floor: int = 0,
        ceiling: int = 6000,
        center_noon: bool = False,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _local_now,
    ):
        self.store = store
        self.base_min = base_min
        self.base_max = base_max
        self.floor = floor
        self.ceiling = ceiling
        self.center_noon = center_noon
        self.rng = rng or random.Random()
        self.clock = clock

    def compute_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Volume, revenue and outcome counts per processor."""
        metrics: Dict[str, Dict[str, Any]] = {}
        for processor in ProcessorId:
            transactions = self.store.transactions(processor)
            successes = [tx for tx in transactions if tx.outcome is Outcome.SUCCESS]
            with localcontext() as ctx:
                ctx.prec = REVENUE_PRECISION
                revenue = sum((tx.amount for tx in successes), Decimal(0)).quantize(CENT)
            metrics[processor.value] = {
                "volumeTotal": len(transactions),
                "revenueSum": float(revenue),
                "successCount": len(successes),
                "declinedCount": sum(
                    1 for tx in transactions if tx.outcome is Outcome.DECLINED
                ),
            }
        return metrics

    def _point_value(self, hour: int) -> int:
        base = self.rng.uniform(self.base_min, self.base_max)
        value = int(round(base * activity_multiplier(hour)))
        return max(self.floor, min(self.ceiling, value))

    def generate_time_series(self) -> List[Dict[str, Any]]:
        """Simulated hourly traffic for the trailing 24 hours."""
        current_hour = self.clock().replace(minute=0, second=0, microsecond=0)
        points: List[Dict[str, Any]] = []
        hours: List[int] = []

        for offset in range(HOURS_IN_SERIES - 1, -1, -1):
            point_time = current_hour - timedelta(hours=offset)
            point: Dict[str, Any] = {"timeLabel": point_time.isoformat()}
            for processor in ProcessorId:
                point[f"{processor.value}Value"] = self._point_value(point_time.hour)
            points.append(point)
            hours.append(point_time.hour)

        if self.center_noon:
            return rotate_to_noon(points, hours)
        return points

    def compute_statistics(self) -> Dict[str, Any]:
        """
        Metrics and time series in the dashboard wire shape.

        Returns:
            Dict[str, Any]: ``{"metricsData": ..., "timeSeriesData": [...]}``
        """
        return {
            "metricsData": self.compute_metrics(),
            "timeSeriesData": self.generate_time_series(),
        }
