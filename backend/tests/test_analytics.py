from datetime import datetime, timedelta

from pocketlawyer.services import analytics
from tests.utils import create_delivery

NOW = datetime(2026, 10, 18, 15, 30)


def test_day_key_is_utc_date():
    assert analytics.day_key(datetime(2026, 1, 2, 23, 59)) == "2026-01-02"


async def test_increments_upsert_totals_and_day_buckets(db):
    await analytics.increment_opens(db, NOW)
    await analytics.increment_opens(db, NOW)
    await analytics.increment_clicks(db, NOW - timedelta(days=1))
    await db.commit()

    counters = await analytics.get_counters(db)

    assert counters["total_opens"] == 2
    assert counters["total_clicks"] == 1
    assert counters["daily_opens"] == {"2026-10-18": 2}
    assert counters["daily_clicks"] == {"2026-10-17": 1}


async def test_counters_default_to_zero(db):
    counters = await analytics.get_counters(db)
    assert counters == {"total_opens": 0, "total_clicks": 0, "daily_opens": {}, "daily_clicks": {}}


async def test_summary_rates_series_and_templates(db):
    await create_delivery(db, "s1", template="welcome", sent_at=NOW - timedelta(days=1), opened=True, open_count=2)
    await create_delivery(db, "s2", template="welcome", sent_at=NOW - timedelta(days=1), opened=True, clicked=True)
    await create_delivery(db, "s3", template="newsletter", sent_at=NOW - timedelta(days=2))
    await create_delivery(db, "s4", template="welcome", sent_at=NOW - timedelta(days=3))
    await create_delivery(db, "old", template="legal-alert", sent_at=NOW - timedelta(days=40))
    await analytics.increment_opens(db, NOW - timedelta(days=1))
    await analytics.increment_opens(db, NOW - timedelta(days=1))
    await analytics.increment_opens(db, NOW - timedelta(days=1))
    await analytics.increment_clicks(db, NOW - timedelta(days=1))
    await analytics.increment_opens(db, NOW - timedelta(days=60))
    await db.commit()

    summary = await analytics.build_summary(db, "week", now=NOW)

    assert summary["period"] == "week"
    stats = summary["summary"]
    assert stats["total_sent"] == 4
    assert stats["unique_opens"] == 2
    assert stats["unique_clicks"] == 1
    assert stats["open_rate"] == 50.0
    assert stats["click_rate"] == 50.0
    assert stats["total_opens"] == 3
    assert stats["total_clicks"] == 1
    assert stats["lifetime_opens"] == 4

    assert summary["template_usage"][0] == {"template": "welcome", "usage_count": 3}
    assert {t["template"] for t in summary["template_usage"]} == {"welcome", "newsletter"}

    series = {point["date"]: point for point in summary["time_series"]}
    assert len(series) == 8
    assert series["2026-10-17"] == {"date": "2026-10-17", "sent": 2, "opens": 3, "clicks": 1}
    assert series["2026-10-16"]["sent"] == 1
    assert series["2026-10-18"]["sent"] == 0


async def test_unknown_period_falls_back_to_month(db):
    summary = await analytics.build_summary(db, "decade", now=NOW)

    assert summary["period"] == "month"
    assert summary["summary"]["open_rate"] == 0.0
    assert len(summary["time_series"]) == 31
