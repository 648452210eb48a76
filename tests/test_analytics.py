from datetime import date, datetime, timezone

import pytest

from analytics import detect_device, period_days, period_start, summarize


@pytest.mark.parametrize("ua,device", [
    ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148", "mobile"),
    ("Mozilla/5.0 (Linux; Android 14; Pixel 8) Mobile Safari/537.36", "mobile"),
    ("Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) Mobile/15E148", "tablet"),
    ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0", "desktop"),
    ("", "unknown"),
    (None, "unknown"),
])
def test_detect_device(ua, device):
    assert detect_device(ua) == device


@pytest.mark.parametrize("period,days", [("1d", 1), ("7d", 7), ("30d", 30), (None, 7), ("90d", 7)])
def test_period_days(period, days):
    assert period_days(period) == days


def test_period_start():
    now = datetime(2024, 5, 31, 12, tzinfo=timezone.utc)
    assert period_start("30d", now) == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)


class TestSummarize:
    TODAY = date(2024, 5, 31)

    def at(self, day, hour=12):
        return datetime(2024, 5, day, hour, tzinfo=timezone.utc)

    def test_empty_period(self):
        summary = summarize([], [], "1d", today=self.TODAY)
        assert summary == {
            "totalViews": 0,
            "totalClicks": 0,
            "ctr": 0,
            "chartData": [{"date": "2024-05-31", "views": 0, "clicks": 0}],
            "deviceStats": {},
            "topComponents": [],
            "period": "1d",
        }

    def test_counts_by_day_and_device(self):
        views = [
            {"viewed_at": self.at(30), "device_type": "mobile"},
            {"viewed_at": self.at(31, 1), "device_type": "mobile"},
            {"viewed_at": self.at(31, 2), "device_type": None},
        ]
        clicks = [{"clicked_at": self.at(31), "component_type": "link", "component_label": None}]

        summary = summarize(views, clicks, "7d", today=self.TODAY)

        assert summary["chartData"][0]["date"] == "2024-05-25"
        assert summary["chartData"][-2:] == [
            {"date": "2024-05-30", "views": 1, "clicks": 0},
            {"date": "2024-05-31", "views": 2, "clicks": 1},
        ]
        assert summary["deviceStats"] == {"mobile": 2, "unknown": 1}
        assert summary["ctr"] == 33.3

    def test_top_components_grouped_by_label(self):
        clicks = (
            [{"clicked_at": self.at(31), "component_type": "button", "component_label": "WhatsApp"}] * 3
            + [{"clicked_at": self.at(31), "component_type": "link", "component_label": None}] * 2
            + [{"clicked_at": self.at(31), "component_type": "button", "component_label": "Loja"}]
        )
        top = summarize([], clicks, "7d", today=self.TODAY)["topComponents"]
        assert [(c["label"], c["count"]) for c in top] == [("WhatsApp", 3), ("link", 2), ("Loja", 1)]
