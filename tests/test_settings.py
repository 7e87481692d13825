from datetime import time

import pytest

from models import db
from models.system_setting import SystemSetting
from services import settings
from services.errors import ValidationError


def _store(key, value):
    db.session.get(SystemSetting, key).value = value
    db.session.commit()


def test_seeded_defaults(ctx):
    assert settings.booking_advance_days() == 14
    assert settings.cancellation_notice_hours() == 12
    assert settings.get_bool_setting(settings.MORNING_WALK_REQUIRES_APPROVAL, False) is True
    assert settings.get_time_setting(settings.APPROVAL_CUTOFF_TIME, time(0, 0)) == time(12, 0)


@pytest.mark.parametrize("raw", ["abc", "", "-3", "1.5"])
def test_bad_int_falls_back_and_logs(ctx, caplog, raw):
    _store(settings.CANCELLATION_NOTICE_HOURS, raw)
    with caplog.at_level("WARNING", logger="services.settings"):
        assert settings.cancellation_notice_hours() == 12
    assert "cancellation_notice_hours" in caplog.text


def test_missing_row_uses_default_quietly(ctx, caplog):
    db.session.delete(db.session.get(SystemSetting, settings.BOOKING_ADVANCE_DAYS))
    db.session.commit()
    with caplog.at_level("WARNING", logger="services.settings"):
        assert settings.booking_advance_days() == 14
    assert "booking_advance_days" not in caplog.text


def test_bad_bool_and_time_fall_back(ctx):
    _store(settings.MORNING_WALK_REQUIRES_APPROVAL, "maybe")
    _store(settings.APPROVAL_CUTOFF_TIME, "noon")
    assert settings.get_bool_setting(settings.MORNING_WALK_REQUIRES_APPROVAL, True) is True
    assert settings.get_time_setting(settings.APPROVAL_CUTOFF_TIME, time(12, 0)) == time(12, 0)


class TestUpdate:
    def test_valid_update(self, ctx):
        row = settings.update_setting(settings.BOOKING_ADVANCE_DAYS, " 30 ")
        assert row.value == "30"
        assert settings.booking_advance_days() == 30

    @pytest.mark.parametrize("key,value", [
        ("booking_advance_days", "soon"),
        ("booking_advance_days", "-1"),
        ("booking_time_granularity", "0"),
        ("morning_walk_requires_approval", "perhaps"),
        ("approval_cutoff_time", "25:00"),
        ("no_such_setting", "1"),
    ])
    def test_invalid_update(self, ctx, key, value):
        with pytest.raises(ValidationError):
            settings.update_setting(key, value)

    def test_listing_includes_every_known_key(self, ctx):
        keys = [row["key"] for row in settings.list_settings()]
        assert keys == sorted(settings.DEFAULTS)


def test_settings_routes(client, login, admin, walker):
    login(client, walker)
    assert client.get("/admin/settings").status_code == 403

    login(client, admin)
    assert client.put("/admin/settings/booking_advance_days", json={}).status_code == 400
    assert client.put("/admin/settings/booking_advance_days", json={"value": "x"}).status_code == 400

    resp = client.put("/admin/settings/booking_advance_days", json={"value": 7})
    assert resp.status_code == 200
    assert resp.get_json() == {"key": "booking_advance_days", "value": "7"}

    listed = {row["key"]: row["value"] for row in client.get("/admin/settings").get_json()}
    assert listed["booking_advance_days"] == "7"
