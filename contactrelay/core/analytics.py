"""
In-process contact form analytics
"""
import ipaddress
import threading
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from pydantic import BaseModel, Field


class AnalyticsSnapshot(BaseModel):
    """Aggregate counts of contact form attempts"""

    total_submissions: int = 0
    success_rate: float = Field(default=0.0, description="Percentage of successful attempts")
    top_countries: Dict[str, int] = Field(default_factory=dict)
    hourly_stats: Dict[str, int] = Field(default_factory=dict)
    error_stats: Dict[str, int] = Field(default_factory=dict)
    last_updated: Optional[datetime] = None


def country_for_ip(ip: str) -> str:
    """Coarse location bucket for a client address.

    There is no GeoIP lookup; loopback and private addresses are "Local" and
    everything else is "Unknown".
    """
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return "Unknown"
    if address.is_loopback or address.is_private:
        return "Local"
    return "Unknown"


class SubmissionAnalytics:
    """Counters updated once per contact attempt"""

    def __init__(self, now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._now = now
        self._lock = threading.Lock()
        self._total = 0
        self._successes = 0
        self._countries: Counter = Counter()
        self._hours: Counter = Counter()
        self._errors: Counter = Counter()
        self._last_updated: Optional[datetime] = None

    def record(self, success: bool, country: str, error: str = "") -> None:
        """Record one attempt"""
        timestamp = self._now()
        with self._lock:
            self._total += 1
            if success:
                self._successes += 1
            elif error:
                self._errors[error] += 1
            self._countries[country] += 1
            self._hours[timestamp.strftime("%H")] += 1
            self._last_updated = timestamp

    def snapshot(self) -> AnalyticsSnapshot:
        """Current counts"""
        with self._lock:
            rate = (self._successes / self._total * 100) if self._total else 0.0
            return AnalyticsSnapshot(
                total_submissions=self._total,
                success_rate=round(rate, 2),
                top_countries=dict(self._countries.most_common()),
                hourly_stats=dict(sorted(self._hours.items())),
                error_stats=dict(self._errors),
                last_updated=self._last_updated,
            )
