"""Tests for portal.core.visibility — who sees what on which calendar.

The compositor is pure, so most tests build a CalendarSnapshot by hand.
"""

import pytest

from portal.core.roles import ViewerRole
from portal.core.visibility import (
    CalendarSnapshot,
    ItemKind,
    Viewer,
    VisibilityMode,
    assignment_item,
    availability_markers,
    client_items,
    request_item,
    role_calendar,
    visible_items,
)
from portal.data.models import (
    AdminEvent,
    Assignment,
    AssignmentStatus,
    ClientAvailability,
    ClientRequest,
    Section,
    User,
    UserRole,
)


def _assignment(id, **overrides):
    values = dict(
        id=id, assigned_to="s1", section=Section.SCRIBES,
        assigned_at="2024-06-01T09:00:00",
    )
    values.update(overrides)
    return Assignment(**values)


def _request(id, **overrides):
    values = dict(id=id, title=f"Request {id}", date="2024-06-10")
    values.update(overrides)
    return ClientRequest(**values)


# ---------------------------------------------------------------------------
# client calendar
# ---------------------------------------------------------------------------


class TestClientItems:
    def test_only_own_requests_case_insensitive(self, client_user):
        requests = [
            _request("r1", client_email="client@example.com"),
            _request("r2", client_email="other@example.com"),
            _request("r3", client_email=None),
        ]
        visible = client_items(Viewer(ViewerRole.CLIENT, client_user), requests)
        assert visible.ids() == {"r1"}
        assert visible.mode == VisibilityMode.NORMAL

    def test_no_email_fallback_is_explicit_mode(self):
        requests = [_request("r1", client_email="a@x.com"), _request("r2")]
        anon = Viewer(ViewerRole.CLIENT, User(id="u", email="", role=UserRole.CLIENT))
        visible = client_items(anon, requests, allow_fallback=True)
        assert visible.ids() == {"r1", "r2"}
        assert visible.mode == VisibilityMode.ALL_REQUESTS_FALLBACK

    def test_no_email_without_fallback_sees_nothing(self):
        visible = client_items(Viewer(ViewerRole.CLIENT, None), [_request("r1")], allow_fallback=False)
        assert len(visible) == 0
        assert visible.mode == VisibilityMode.NORMAL

    def test_fallback_follows_settings_by_default(self):
        # conftest enables CLIENT_FALLBACK_SHOW_ALL
        visible = client_items(Viewer(ViewerRole.CLIENT, None), [_request("r1")])
        assert visible.mode == VisibilityMode.ALL_REQUESTS_FALLBACK

    def test_clients_never_see_admin_events(self, client_user):
        snapshot = CalendarSnapshot(
            events=[AdminEvent(id="e1", title="Staff meeting", start="2024-06-01")],
            requests=[_request("r1", client_email="client@example.com")],
        )
        visible = visible_items(Viewer(ViewerRole.CLIENT, client_user), snapshot)
        assert visible.ids(ItemKind.ADMIN_EVENT) == set()
        assert visible.ids(ItemKind.REQUEST) == {"r1"}


# ---------------------------------------------------------------------------
# executive calendar
# ---------------------------------------------------------------------------


class TestExecutiveItems:
    def test_team_member_assignment_visible(self, executive_user):
        snapshot = CalendarSnapshot(
            assignments=[
                _assignment("a1", assigned_to="s5", assigned_to_id="s5", assigned_to_email="s1@x.com"),
                _assignment("a2", assigned_to="s9", assigned_to_id="s9", assigned_to_email="s9@x.com"),
            ],
            team_tokens=frozenset({"s1@x.com"}),
        )
        visible = visible_items(Viewer(ViewerRole.EXECUTIVE, executive_user), snapshot)
        assert visible.ids(ItemKind.ASSIGNMENT) == {"a1"}

    def test_own_assignments_visible(self, executive_user):
        snapshot = CalendarSnapshot(
            assignments=[_assignment("a1", assigned_to="EXEC@x.com", assigned_to_id=None)],
        )
        visible = visible_items(Viewer(ViewerRole.EXECUTIVE, executive_user), snapshot)
        assert visible.ids() == {"a1"}

    def test_own_directory_entry_counts(self, executive_user):
        from portal.data.models import Staffer

        me = Staffer(
            id="s-exec", first_name="Eve", last_name="Exec", email="exec@x.com",
            position="Managing Editor", section=Section.EXECUTIVES,
        )
        snapshot = CalendarSnapshot(
            assignments=[_assignment("a1", assigned_to="s-exec", assigned_to_id="s-exec")],
            staffers=[me],
        )
        visible = visible_items(Viewer(ViewerRole.EXECUTIVE, executive_user), snapshot)
        assert visible.ids() == {"a1"}

    def test_only_targeted_admin_events(self, executive_user):
        snapshot = CalendarSnapshot(events=[
            AdminEvent(id="e1", title="For me", start="2024-06-01", staffer_id="u-exec"),
            AdminEvent(id="e2", title="For all", start="2024-06-01"),
            AdminEvent(id="e3", title="For s9", start="2024-06-01", staffer_id="s9"),
        ])
        visible = visible_items(Viewer(ViewerRole.EXECUTIVE, executive_user), snapshot)
        assert visible.ids(ItemKind.ADMIN_EVENT) == {"e1"}
        [item] = visible.items
        assert item.from_admin

    @pytest.mark.parametrize("assigned_by,assigned_by_email,expected", [
        ("Admin", "exec@x.com", True),
        ("Eve Exec", "other@x.com", True),
        ("Eve Exec", "exec@x.com", False),
        ("Eve Exec", None, False),
    ])
    def test_from_admin_flag(self, executive_user, assigned_by, assigned_by_email, expected):
        snapshot = CalendarSnapshot(
            assignments=[_assignment(
                "a1", assigned_to="s1", assigned_by=assigned_by, assigned_by_email=assigned_by_email,
            )],
            team_tokens=frozenset({"s1"}),
        )
        [item] = visible_items(Viewer(ViewerRole.EXECUTIVE, executive_user), snapshot).items
        assert item.from_admin is expected

    def test_no_user_sees_nothing(self):
        snapshot = CalendarSnapshot(assignments=[_assignment("a1")], team_tokens=frozenset({"s1"}))
        assert len(visible_items(Viewer(ViewerRole.EXECUTIVE, None), snapshot)) == 0


# ---------------------------------------------------------------------------
# staffer calendar
# ---------------------------------------------------------------------------


class TestStafferItems:
    def test_untargeted_and_own_events(self):
        staffer = User(id="s1", email="s1@x.com", role=UserRole.STAFFER)
        snapshot = CalendarSnapshot(
            events=[
                AdminEvent(id="e1", title="All hands", start="2024-06-01"),
                AdminEvent(id="e2", title="Yours", start="2024-06-02T10:00", staffer_id="s1"),
                AdminEvent(id="e3", title="Not yours", start="2024-06-03", staffer_id="s9"),
            ],
            assignments=[_assignment("a1")],
        )
        visible = visible_items(Viewer(ViewerRole.STAFFER, staffer), snapshot)
        assert visible.ids() == {"e1", "e2"}
        timed = next(i for i in visible if i.source_id == "e2")
        assert timed.all_day is False


# ---------------------------------------------------------------------------
# role calendar (section head, reports)
# ---------------------------------------------------------------------------


class TestRoleCalendar:
    def test_titled_is_class_schedule_untitled_team_task_is_event(self):
        titled = _assignment("a1", task_title="Layout Review")
        untitled = _assignment("a2")
        calendar = role_calendar([titled, untitled])
        assert [a.id for a in calendar.class_schedule] == ["a1"]
        assert [a.id for a in calendar.events] == ["a2"]

    def test_untitled_request_work_in_neither(self):
        calendar = role_calendar([_assignment("a1", request_id="r1")])
        assert calendar.events == [] and calendar.class_schedule == []

    def test_filter_by_user_through_directory(self, scribe):
        viewer = Viewer(ViewerRole.SECTION_HEAD, User(id="u1", email="s1@x.com", role=UserRole.SECTION_HEAD))
        mine = _assignment("a1", assigned_to="s1", assigned_to_id="s1")
        theirs = _assignment("a2", assigned_to="s9", assigned_to_id="s9")
        calendar = role_calendar([mine, theirs], viewer, filter_by_user=True, staffers=[scribe])
        assert [a.id for a in calendar.events] == ["a1"]

    def test_filter_by_user_without_user_is_empty(self):
        calendar = role_calendar([_assignment("a1")], None, filter_by_user=True)
        assert calendar.events == [] and calendar.class_schedule == []

    def test_section_head_items_default_titles(self):
        viewer = Viewer(ViewerRole.SECTION_HEAD, None)
        snapshot = CalendarSnapshot(assignments=[
            _assignment("a1", task_title="Layout Review", task_date="2024-06-03", task_time="9:05"),
            _assignment("a2"),
        ])
        items = {i.source_id: i for i in visible_items(viewer, snapshot)}
        assert items["a1"].title == "Layout Review"
        assert items["a1"].start == "2024-06-03T09:05"
        assert items["a1"].is_task
        assert items["a2"].title == "Event"
        assert items["a2"].start == "2024-06-01"


# ---------------------------------------------------------------------------
# item builders
# ---------------------------------------------------------------------------


class TestItemBuilders:
    def test_request_item_ids_and_time(self):
        item = request_item(_request("r1", time="14:30"))
        assert item.id == "client-request-r1"
        assert item.start == "2024-06-10T14:30"
        assert item.all_day is False
        assert item.status == "pending"

    def test_assignment_falls_back_to_request(self):
        request = _request("r1", title="Fair", location="Quad", time="08:00")
        item = assignment_item(_assignment("a1", request_id="r1"), request)
        assert item.id == "assignment-a1"
        assert (item.title, item.location, item.start) == ("Fair", "Quad", "2024-06-10T08:00")
        assert item.status == AssignmentStatus.PENDING.value


# ---------------------------------------------------------------------------
# admin availability calendar
# ---------------------------------------------------------------------------


class TestAvailabilityMarkers:
    def test_records_and_request_counts(self):
        markers = availability_markers(
            [
                ClientAvailability(date="2024-06-01", available=False, notes="holiday"),
                ClientAvailability(date="2024-06-02", available=True),
            ],
            [_request("r1", date="2024-06-02"), _request("r2", date="2024-06-02"),
             _request("r3", date="2024-06-05")],
        )
        by_day = {m.source_id: m for m in markers}
        assert by_day["2024-06-01"].title == "Not Available"
        assert by_day["2024-06-01"].status == "unavailable"
        assert by_day["2024-06-02"].title == "Available (2 requests)"
        assert by_day["2024-06-02"].request_count == 2
        assert by_day["2024-06-05"].kind == ItemKind.REQUEST_COUNT
        assert by_day["2024-06-05"].title == "1 Client Request"
