"""
Page analytics: device classification, reporting periods and the per-page
summary built from stored view and click events.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

PERIOD_DAYS = {"1d": 1, "7d": 7, "30d": 30}
DEFAULT_PERIOD = "7d"
TOP_COMPONENTS = 10

_MOBILE = re.compile(r"mobile|android|iphone|ipad|ipod|blackberry|windows phone", re.I)
_TABLET = re.compile(r"ipad|tablet", re.I)


def detect_device(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "unknown"
    if _MOBILE.search(user_agent):
        return "tablet" if _TABLET.search(user_agent) else "mobile"
    return "desktop"


def period_days(period: Optional[str]) -> int:
    return PERIOD_DAYS.get(period or DEFAULT_PERIOD, PERIOD_DAYS[DEFAULT_PERIOD])


def period_start(period: Optional[str], now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=period_days(period))


def _day(value: datetime) -> str:
    return value.date().isoformat()


def summarize(views: List[Dict[str, Any]], clicks: List[Dict[str, Any]], period: Optional[str],
              today: Optional[date] = None) -> Dict[str, Any]:
    """Totals, click-through rate, a per-day chart, device split and most clicked components."""
    today = today or datetime.now(timezone.utc).date()

    views_by_day: Dict[str, int] = {}
    devices: Dict[str, int] = {}
    for view in views:
        day = _day(view["viewed_at"])
        views_by_day[day] = views_by_day.get(day, 0) + 1
        device = view.get("device_type") or "unknown"
        devices[device] = devices.get(device, 0) + 1

    clicks_by_day: Dict[str, int] = {}
    components: Dict[str, Dict[str, Any]] = {}
    for click in clicks:
        day = _day(click["clicked_at"])
        clicks_by_day[day] = clicks_by_day.get(day, 0) + 1
        label = click.get("component_label") or click["component_type"]
        entry = components.setdefault(label, {"count": 0, "label": label, "type": click["component_type"]})
        entry["count"] += 1

    days = period_days(period)
    chart = []
    for offset in range(days - 1, -1, -1):
        day = (today - timedelta(days=offset)).isoformat()
        chart.append({"date": day, "views": views_by_day.get(day, 0), "clicks": clicks_by_day.get(day, 0)})

    total_views, total_clicks = len(views), len(clicks)
    return {
        "totalViews": total_views,
        "totalClicks": total_clicks,
        "ctr": round(total_clicks / total_views * 100, 1) if total_views else 0,
        "chartData": chart,
        "deviceStats": devices,
        "topComponents": sorted(components.values(), key=lambda c: c["count"], reverse=True)[:TOP_COMPONENTS],
        "period": period or DEFAULT_PERIOD,
    }
