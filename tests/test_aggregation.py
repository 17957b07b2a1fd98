"""Tests de consultas y agregación de lecturas."""

from datetime import datetime, timedelta

import pytest

from hydro_api.errors import ReadingNotFoundError, ValidationError
from hydro_api.queries import sensor_data
from hydro_api.queries.aggregation import (
    build_hourly_buckets,
    round_half_up,
    summarize_hourly,
)

from conftest import store_reading

DAY = datetime(2025, 1, 15)


class TestRounding:

    def test_half_up_not_bankers(self):
        assert round_half_up(2.5, 0) == 3
        assert round_half_up(3.5, 0) == 4
        assert round_half_up(802.5, 0) == 803
        assert round_half_up(24.125, 2) == 24.13

    def test_tds_rounds_to_int(self):
        value = round_half_up(812.4, 0)

        assert value == 812
        assert isinstance(value, int)


class TestHourly:

    def test_single_reading_scenario(self, db):
        store_reading(db, DAY.replace(hour=14, minute=32), ph=6.5)

        buckets = sensor_data.hourly(db, "2025-01-15")

        assert len(buckets) == 24
        assert [b["hour"] for b in buckets][:3] == ["00:00", "01:00", "02:00"]
        b14 = buckets[14]
        assert b14["hour"] == "14:00"
        assert b14["ph"] == 6.5
        assert b14["record_count"] == 1
        for i, bucket in enumerate(buckets):
            if i == 14:
                continue
            assert bucket["ph"] is None
            assert bucket["record_count"] == 0

    def test_empty_day_still_has_24_buckets(self, db):
        buckets = sensor_data.hourly(db, "2025-01-15")

        assert len(buckets) == 24
        assert all(b["record_count"] == 0 for b in buckets)
        assert all(b["tds"] is None and b["suhu_air"] is None for b in buckets)

    def test_means_and_rounding_asymmetry(self, db):
        store_reading(db, DAY.replace(hour=9, minute=5), water_temp=24.0, tds=800.0, ph=6.0)
        store_reading(db, DAY.replace(hour=9, minute=45), water_temp=24.25, tds=805.0, ph=None)

        bucket = sensor_data.hourly(db, "2025-01-15")[9]

        assert bucket["record_count"] == 2
        assert bucket["suhu_air"] == 24.13
        assert bucket["tds"] == 803
        assert isinstance(bucket["tds"], int)
        # pH promedia solo los valores no nulos
        assert bucket["ph"] == 6.0

    def test_other_days_are_excluded(self, db):
        store_reading(db, DAY - timedelta(minutes=1), ph=5.0)
        store_reading(db, DAY + timedelta(days=1), ph=7.0)
        store_reading(db, DAY.replace(hour=0), ph=6.0)

        buckets = sensor_data.hourly(db, "2025-01-15")

        assert sum(b["record_count"] for b in buckets) == 1
        assert buckets[0]["ph"] == 6.0
        assert buckets[23]["record_count"] == 0

    def test_hourly_is_idempotent(self, db):
        store_reading(db, DAY.replace(hour=3), tds=1000.0)

        assert sensor_data.hourly(db, "2025-01-15") == sensor_data.hourly(db, "2025-01-15")

    @pytest.mark.parametrize("bad", ["2025-13-01", "15-01-2025", "2025/01/15", "", "2025-02-30"])
    def test_invalid_date(self, db, bad):
        with pytest.raises(ValidationError):
            sensor_data.hourly(db, bad)

    def test_summary_over_hourly_averages(self, db):
        store_reading(db, DAY.replace(hour=8), tds=800.0, ph=6.0)
        store_reading(db, DAY.replace(hour=12), tds=900.0, ph=6.5)

        summary = summarize_hourly(sensor_data.hourly(db, "2025-01-15"))

        assert summary["tds"] == {"avg": 850, "min": 800, "max": 900}
        assert summary["ph"] == {"avg": 6.25, "min": 6.0, "max": 6.5}

    def test_summary_of_empty_day(self):
        summary = summarize_hourly(build_hourly_buckets([]))

        assert summary["kelembapan"] == {"avg": None, "min": None, "max": None}


class TestDaily:

    def test_first_reading_per_day_ascending(self, db):
        now = datetime(2025, 1, 20, 12, 0)
        store_reading(db, datetime(2025, 1, 18, 15, 0), tds=1800.0)
        store_reading(db, datetime(2025, 1, 18, 6, 0), tds=1600.0)
        store_reading(db, datetime(2025, 1, 19, 23, 59), tds=1900.0)
        store_reading(db, datetime(2025, 1, 20, 0, 1), tds=2000.0)
        store_reading(db, datetime(2025, 1, 20, 9, 0), tds=2100.0)

        rows = sensor_data.daily(db, days=30, now=now)

        assert [r.tds for r in rows] == [1600.0, 1900.0, 2000.0]
        assert [r.captured_at.date().day for r in rows] == [18, 19, 20]

    def test_window_excludes_older_days(self, db):
        now = datetime(2025, 1, 20, 12, 0)
        store_reading(db, datetime(2025, 1, 10, 8, 0))
        store_reading(db, datetime(2025, 1, 19, 8, 0))

        rows = sensor_data.daily(db, days=7, now=now)

        assert [r.captured_at for r in rows] == [datetime(2025, 1, 19, 8, 0)]

    def test_scan_limit_keeps_most_recent_rows(self, db):
        now = datetime(2025, 1, 20, 12, 0)
        for day in (15, 16, 17, 18, 19):
            store_reading(db, datetime(2025, 1, day, 8, 0))

        rows = sensor_data.daily(db, days=30, scan_limit=3, now=now)

        assert [r.captured_at.day for r in rows] == [17, 18, 19]

    def test_scan_limit_keeps_true_first_of_cut_day(self, db):
        now = datetime(2025, 1, 20, 12, 0)
        store_reading(db, datetime(2025, 1, 17, 6, 0), tds=1706.0)
        store_reading(db, datetime(2025, 1, 17, 8, 0), tds=1708.0)
        store_reading(db, datetime(2025, 1, 18, 8, 0), tds=1808.0)
        store_reading(db, datetime(2025, 1, 19, 8, 0), tds=1908.0)

        rows = sensor_data.daily(db, days=30, scan_limit=3, now=now)

        assert [r.captured_at for r in rows] == [
            datetime(2025, 1, 17, 6, 0),
            datetime(2025, 1, 18, 8, 0),
            datetime(2025, 1, 19, 8, 0),
        ]
        assert rows[0].tds == 1706.0

    @pytest.mark.parametrize("bad", [0, -1, 366, True])
    def test_invalid_days(self, db, bad):
        with pytest.raises(ValidationError):
            sensor_data.daily(db, days=bad)


class TestHistoryAndLatest:

    def test_history_is_oldest_first_and_limited(self, db):
        for minute in range(5):
            store_reading(db, DAY.replace(minute=minute), tds=1000.0 + minute)

        rows = sensor_data.history(db, limit=3)

        assert [r.tds for r in rows] == [1002.0, 1003.0, 1004.0]

    def test_latest(self, db):
        store_reading(db, DAY.replace(hour=1))
        newest = store_reading(db, DAY.replace(hour=2))

        assert sensor_data.latest(db).id == newest.id

    def test_latest_without_data(self, db):
        with pytest.raises(ReadingNotFoundError):
            sensor_data.latest(db)

    def test_wire_format(self, db):
        reading = store_reading(db, DAY.replace(hour=2), ph=None, pump_state="OFF")

        data = reading.to_dict()

        assert set(data) == {"id", "suhu_air", "suhu_udara", "kelembapan", "tds", "ph", "pompa", "created_at"}
        assert data["ph"] is None
        assert data["pompa"] == "OFF"
        assert data["created_at"] == "2025-01-15T02:00:00"
