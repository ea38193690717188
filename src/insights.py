"""
Dashboard aggregates over stored feedback. Read-only; no enrichment logic.
"""

from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from nodes.prioritize import parse_timestamp
from src.models import URGENCIES

AT_RISK_URGENCIES = ("critical", "high")
TOP_THEMES = 8
RECENT_CRITICAL = 5
HIGH_PRIORITY = 10
TEMPORAL_DAYS = 7


def is_at_risk(record) -> bool:
    return record.urgency in AT_RISK_URGENCIES and record.sentiment == "negative"


class InsightsAggregator:
    def __init__(self, repository):
        self.repository = repository

    def build(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now(timezone.utc)
        records = self.repository.all()

        return {
            "stats": self._stats(records),
            "by_source": self._by_source(records),
            "by_tier": self._by_tier(records),
            "top_themes": self._top_themes(records),
            "severity_distribution": self._severity_distribution(records),
            "recent_critical": [
                r.to_dict() for r in sorted(
                    (r for r in records if r.urgency == "critical"),
                    key=lambda r: r.created_at, reverse=True,
                )[:RECENT_CRITICAL]
            ],
            "high_priority": [
                r.to_dict() for r in sorted(
                    (r for r in records if r.priority_score is not None),
                    key=lambda r: r.priority_score, reverse=True,
                )[:HIGH_PRIORITY]
            ],
            "temporal": self._temporal(records, now),
            "arr_at_risk": sum(r.arr_estimate or 0 for r in records if is_at_risk(r)),
        }

    @staticmethod
    def _stats(records) -> dict:
        urgency = Counter(r.urgency for r in records)
        sentiment = Counter(r.sentiment for r in records)
        scores = [r.sentiment_score for r in records if r.sentiment_score is not None]
        return {
            "total": len(records),
            **{level: urgency[level] for level in URGENCIES},
            "negative": sentiment["negative"],
            "positive": sentiment["positive"],
            "neutral": sentiment["neutral"],
            "avg_sentiment": round(sum(scores) / len(scores), 2) if scores else None,
            "processing": sum(1 for r in records if r.processed_at is None),
        }

    @staticmethod
    def _by_source(records) -> list[dict]:
        groups = defaultdict(list)
        for r in records:
            groups[r.source].append(r)
        return [
            {
                "source": source,
                "count": len(items),
                "critical": sum(1 for r in items if r.urgency == "critical"),
                "negative": sum(1 for r in items if r.sentiment == "negative"),
            }
            for source, items in sorted(groups.items())
        ]

    @staticmethod
    def _by_tier(records) -> list[dict]:
        groups = defaultdict(list)
        for r in records:
            groups[r.customer_tier].append(r)
        return [
            {
                "customer_tier": tier,
                "count": len(items),
                "critical": sum(1 for r in items if r.urgency == "critical"),
                "arr_at_risk": sum(r.arr_estimate or 0 for r in items if is_at_risk(r)),
            }
            for tier, items in sorted(groups.items())
        ]

    @staticmethod
    def _top_themes(records) -> list[dict]:
        counts = Counter()
        for r in records:
            counts.update(r.theme_list)
        return [{"theme": theme, "count": count} for theme, count in counts.most_common(TOP_THEMES)]

    @staticmethod
    def _severity_distribution(records) -> list[dict]:
        classified = [r for r in records if r.urgency is not None]
        counts = Counter(r.urgency for r in classified)
        order = {level: i for i, level in enumerate(URGENCIES)}
        return [
            {
                "urgency": level,
                "count": count,
                "percentage": round(count * 100.0 / len(classified), 1),
            }
            for level, count in sorted(counts.items(), key=lambda item: order.get(item[0], len(order)))
        ]

    @staticmethod
    def _temporal(records, now: datetime) -> list[dict]:
        cutoff = now - timedelta(days=TEMPORAL_DAYS)
        days = defaultdict(lambda: {"total": 0, "negative": 0})
        for r in records:
            try:
                created = parse_timestamp(r.created_at)
            except (TypeError, ValueError):
                continue
            if created < cutoff:
                continue
            day = days[created.date().isoformat()]
            day["total"] += 1
            if r.sentiment == "negative":
                day["negative"] += 1
        return [{"date": date, **counts} for date, counts in sorted(days.items(), reverse=True)]
