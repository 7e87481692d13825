from datetime import date, time

import pytest

from models import db
from models.custom_holiday import CustomHoliday
from services import settings, time_rules
from services.errors import ConflictError, NotFoundError, ValidationError

MONDAY = date(2025, 1, 27)
SATURDAY = date(2025, 1, 25)
SUNDAY = date(2025, 1, 26)


class TestDayType:
    def test_weekdays_and_weekends(self, ctx):
        assert time_rules.day_type_for(MONDAY) == "weekday"
        assert time_rules.day_type_for(date(2025, 1, 31)) == "weekday"
        assert time_rules.day_type_for(SATURDAY) == "weekend"
        assert time_rules.day_type_for(SUNDAY) == "weekend"

    def test_active_holiday_uses_weekend_rules(self, ctx):
        db.session.add(CustomHoliday(date=date(2025, 1, 1), name="New Year", is_active=True))
        db.session.add(CustomHoliday(date=date(2025, 1, 6), name="Epiphany", is_active=False))
        db.session.commit()

        assert time_rules.day_type_for(date(2025, 1, 1)) == "weekend"
        assert time_rules.day_type_for(date(2025, 1, 6)) == "weekday"
        assert all(r.day_type == "weekend" for r in time_rules.rules_for_date(date(2025, 1, 1)))


class TestClassify:
    @pytest.mark.parametrize("t", [time(14, 0), time(14, 45), time(16, 29), time(18, 30)])
    def test_weekday_afternoon_and_evening_are_freely_bookable(self, ctx, t):
        window = time_rules.classify(MONDAY, t)
        assert window.kind == time_rules.FREELY_BOOKABLE
        assert window.reason is None

    @pytest.mark.parametrize("t", [time(9, 0), time(10, 30), time(11, 45)])
    def test_morning_requires_approval(self, ctx, t):
        assert time_rules.classify(MONDAY, t).kind == time_rules.REQUIRES_APPROVAL

    @pytest.mark.parametrize("t,rule_name", [
        (time(13, 0), "Lunch break"),
        (time(13, 45), "Lunch break"),
        (time(16, 30), "Feeding time"),
        (time(17, 30), "Feeding time"),
    ])
    def test_blocked_windows_name_the_rule(self, ctx, t, rule_name):
        window = time_rules.classify(MONDAY, t)
        assert window.kind == time_rules.BLOCKED
        assert rule_name in window.reason

    @pytest.mark.parametrize("t", [time(8, 0), time(12, 30), time(19, 30), time(20, 0)])
    def test_outside_all_windows(self, ctx, t):
        window = time_rules.classify(MONDAY, t)
        assert window.kind == time_rules.OUTSIDE
        assert window.reason == time_rules.OUTSIDE_HOURS_REASON

    def test_weekend_rules(self, ctx):
        assert time_rules.classify(SATURDAY, time(15, 0)).kind == time_rules.FREELY_BOOKABLE
        assert time_rules.classify(SUNDAY, time(16, 30)).kind == time_rules.FREELY_BOOKABLE
        assert time_rules.classify(SATURDAY, time(12, 30)).kind == time_rules.BLOCKED
        assert time_rules.classify(SATURDAY, time(17, 30)).kind == time_rules.OUTSIDE

    def test_approval_can_be_switched_off(self, ctx):
        settings.update_setting(settings.MORNING_WALK_REQUIRES_APPROVAL, "false")
        assert time_rules.classify(MONDAY, time(10, 0)).kind == time_rules.FREELY_BOOKABLE

    def test_approval_cutoff_is_configurable(self, ctx):
        settings.update_setting(settings.APPROVAL_CUTOFF_TIME, "15:00")
        assert time_rules.classify(MONDAY, time(14, 30)).kind == time_rules.REQUIRES_APPROVAL
        assert time_rules.classify(MONDAY, time(15, 0)).kind == time_rules.FREELY_BOOKABLE


class TestAvailableSlots:
    def test_fifteen_minute_steps_skip_blocked_windows(self, ctx):
        slots = [s["time"] for s in time_rules.available_slots(MONDAY)]

        for expected in ("09:00", "09:15", "11:45", "14:00", "16:15", "18:00", "19:15"):
            assert expected in slots
        for blocked in ("13:00", "13:45", "17:00", "17:15", "12:00", "19:30"):
            assert blocked not in slots

    def test_slots_carry_approval_flag(self, ctx):
        slots = {s["time"]: s for s in time_rules.available_slots(MONDAY)}
        assert slots["09:30"]["requires_approval"] is True
        assert slots["14:30"]["requires_approval"] is False

    def test_granularity_setting(self, ctx):
        settings.update_setting(settings.BOOKING_TIME_GRANULARITY, "30")
        slots = [s["time"] for s in time_rules.available_slots(SATURDAY)]
        assert slots[:3] == ["09:00", "09:30", "10:00"]
        assert "09:15" not in slots


class TestRuleAuthoring:
    def test_create_rule(self, ctx):
        rule = time_rules.create_rule("weekday", "Early bird", "07:00", "08:30")
        assert rule.id is not None
        assert time_rules.classify(MONDAY, time(7, 30)).kind == time_rules.REQUIRES_APPROVAL

    def test_blocked_flag_accepts_string_tokens(self, ctx):
        lunch = next(r for r in time_rules.rules_for_day_type("weekday") if r.rule_name == "Lunch break")
        updated = time_rules.update_rule(lunch.id, {"is_blocked": "false"})

        assert updated.is_blocked is False
        assert time_rules.classify(MONDAY, time(13, 30)).kind == time_rules.FREELY_BOOKABLE

    @pytest.mark.parametrize("flag", ["nope", "", None, 1, [True]])
    def test_blocked_flag_rejects_other_values(self, ctx, flag):
        lunch = next(r for r in time_rules.rules_for_day_type("weekday") if r.rule_name == "Lunch break")
        with pytest.raises(ValidationError, match="is_blocked must be true or false"):
            time_rules.update_rule(lunch.id, {"is_blocked": flag})
        with pytest.raises(ValidationError, match="is_blocked"):
            time_rules.create_rule("weekday", "Early bird", "07:00", "08:30", is_blocked=flag)

        db.session.refresh(lunch)
        assert lunch.is_blocked is True

    def test_time_rule_route_keeps_string_false(self, client, login, admin):
        login(client, admin)
        resp = client.post("/admin/time-rules", json={
            "day_type": "weekday", "rule_name": "Early bird",
            "start_time": "07:00", "end_time": "08:30", "is_blocked": "false",
        })
        assert resp.status_code == 201
        assert resp.get_json()["is_blocked"] is False

        bad = client.post("/admin/time-rules", json={
            "day_type": "weekday", "rule_name": "Late owl",
            "start_time": "20:00", "end_time": "21:00", "is_blocked": "maybe",
        })
        assert bad.status_code == 400

    def test_overlap_rejected(self, ctx):
        with pytest.raises(ValidationError, match="overlaps"):
            time_rules.create_rule("weekday", "Brunch", "11:30", "12:30")

    def test_adjacent_windows_allowed(self, ctx):
        rule = time_rules.create_rule("weekday", "Noon walk", "12:00", "13:00")
        assert rule.start_time == time(12, 0)

    def test_end_before_start_rejected(self, ctx):
        with pytest.raises(ValidationError):
            time_rules.create_rule("weekday", "Backwards", "21:00", "20:00")

    def test_bad_day_type_and_format(self, ctx):
        with pytest.raises(ValidationError):
            time_rules.create_rule("holiday", "Night", "20:00", "21:00")
        with pytest.raises(ValidationError):
            time_rules.create_rule("weekday", "Night", "8pm", "21:00")

    def test_duplicate_name_conflicts(self, ctx):
        with pytest.raises(ConflictError):
            time_rules.create_rule("weekday", "Morning walk", "06:00", "07:00")

    def test_update_ignores_own_window_for_overlap(self, ctx):
        rule = next(r for r in time_rules.rules_for_day_type("weekday") if r.rule_name == "Evening walk")
        updated = time_rules.update_rule(rule.id, {"end_time": "20:00"})
        assert updated.end_time == time(20, 0)

    def test_update_and_delete_missing_rule(self, ctx):
        with pytest.raises(NotFoundError):
            time_rules.update_rule(9999, {"end_time": "20:00"})
        with pytest.raises(NotFoundError):
            time_rules.delete_rule(9999)
