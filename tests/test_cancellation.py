from datetime import date, datetime, time

import pytest

from models import db
from models.audit_log import AuditLog
from services import cancellation
from services.errors import AuthorizationError, NotFoundError, ValidationError
from tests.conftest import next_weekday, principal_for

WALK_DAY = date(2025, 6, 10)


@pytest.fixture
def booking(walker, dog, make_booking):
    return make_booking(walker, dog, WALK_DAY, time(14, 0))


class TestOwnerCancel:
    def test_with_enough_notice(self, walker, booking, sent_mail):
        result = cancellation.cancel_booking(booking.id, principal_for(walker),
                                             now=datetime(2025, 6, 10, 2, 0))

        assert result.status == "cancelled"
        assert result.cancelled_at is not None
        assert result.admin_cancellation_reason is None
        assert sent_mail[0]["subject"] == "Booking cancelled"
        assert AuditLog.query.filter_by(action="BOOKING_CANCEL").count() == 1

    def test_inside_notice_period(self, walker, booking):
        with pytest.raises(ValidationError, match="12 hours"):
            cancellation.cancel_booking(booking.id, principal_for(walker),
                                        now=datetime(2025, 6, 10, 2, 1))

    def test_other_users_booking(self, make_user, booking):
        with pytest.raises(AuthorizationError):
            cancellation.cancel_booking(booking.id, principal_for(make_user()),
                                        now=datetime(2025, 6, 1))

    def test_already_cancelled(self, walker, booking):
        now = datetime(2025, 6, 1)
        cancellation.cancel_booking(booking.id, principal_for(walker), now=now)
        with pytest.raises(ValidationError, match="already cancelled"):
            cancellation.cancel_booking(booking.id, principal_for(walker), now=now)

    def test_missing(self, walker):
        with pytest.raises(NotFoundError):
            cancellation.cancel_booking(4242, principal_for(walker))


class TestAdminCancel:
    def test_reason_required(self, admin, booking):
        with pytest.raises(ValidationError, match="Reason"):
            cancellation.cancel_booking(booking.id, principal_for(admin))

    def test_ignores_notice_period(self, admin, booking, sent_mail):
        result = cancellation.cancel_booking(booking.id, principal_for(admin), reason="sick dog",
                                             now=datetime(2025, 6, 10, 13, 0))

        assert result.status == "cancelled"
        assert result.admin_cancellation_reason == "sick dog"
        assert sent_mail[0]["subject"] == "Booking cancelled by administration"
        assert AuditLog.query.filter_by(action="ADMIN_BOOKING_CANCEL").count() == 1


class TestNotes:
    def test_only_on_completed(self, walker, booking):
        with pytest.raises(ValidationError, match="completed"):
            cancellation.add_notes(booking.id, principal_for(walker), "great walk")

        booking.status = "completed"
        db.session.commit()
        result = cancellation.add_notes(booking.id, principal_for(walker), " great walk ")
        assert result.user_notes == "great walk"

    def test_owner_only_and_not_empty(self, walker, admin, booking):
        booking.status = "completed"
        db.session.commit()
        with pytest.raises(AuthorizationError):
            cancellation.add_notes(booking.id, principal_for(admin), "hi")
        with pytest.raises(ValidationError):
            cancellation.add_notes(booking.id, principal_for(walker), "   ")


class TestListing:
    def test_walkers_see_only_their_own(self, walker, admin, make_user, dog, make_booking, booking):
        other = make_booking(make_user(), dog, WALK_DAY, time(15, 0))

        mine = cancellation.list_bookings(principal_for(walker), user_id=other.user_id)
        assert [b.id for b in mine] == [booking.id]

        everyone = cancellation.list_bookings(principal_for(admin))
        assert [b.id for b in everyone] == [booking.id, other.id]

        filtered = cancellation.list_bookings(principal_for(admin), user_id=other.user_id)
        assert [b.id for b in filtered] == [other.id]

    def test_status_filter(self, walker, make_booking, dog, booking):
        done = make_booking(walker, dog, WALK_DAY, time(16, 0), status="completed")

        completed = cancellation.list_bookings(principal_for(walker), status="completed")
        assert [b.id for b in completed] == [done.id]
        with pytest.raises(ValidationError, match="status must be one of"):
            cancellation.list_bookings(principal_for(walker), status="finished")

    def test_routes(self, client, login, walker, make_user, dog, make_booking):
        mine = make_booking(walker, dog, next_weekday(min_offset=3), time(14, 0))
        theirs = make_booking(make_user(), dog, mine.date, time(15, 0))
        login(client, walker)

        assert client.get(f"/bookings/{mine.id}").status_code == 200
        assert client.get(f"/bookings/{theirs.id}").status_code == 403
        assert client.get("/bookings/4242").status_code == 404
        assert [b["id"] for b in client.get("/bookings").get_json()] == [mine.id]
        assert client.get("/bookings?date_from=tomorrow").status_code == 400
        assert client.get("/bookings?status=done").status_code == 400

        assert client.post(f"/bookings/{mine.id}/cancel").status_code == 200
        assert client.post(f"/bookings/{theirs.id}/cancel").status_code == 403

    def test_available_slots_route(self, client, login, walker):
        login(client, walker)
        resp = client.get(f"/bookings/available-slots?date={next_weekday().isoformat()}")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["day_type"] == "weekday"
        assert body["is_blocked"] is False
        assert body["slots"]
        assert client.get("/bookings/available-slots").status_code == 400
