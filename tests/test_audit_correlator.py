"""Tests for audit correlation: filtering, pagination, role resolution and the stale cache."""

from datetime import date, datetime

import pytest
import pytz

from services.audit.AuditCorrelator import apply_filters, normalize_role, paginate
from shared.models.audit import AuditFilter, CorrelatedAuditEvent
from shared.models.errors import NetworkError

ORG = "org-1"
BERLIN = pytz.timezone("Europe/Berlin")


def berlin(year: int, month: int, day: int, hour: int = 12, minute: int = 0, second: int = 0) -> datetime:
    return BERLIN.localize(datetime(year, month, day, hour, minute, second))


def event(event_id: str, ts: datetime, **fields) -> CorrelatedAuditEvent:
    return CorrelatedAuditEvent(
        id=event_id,
        timestamp_ms=int(ts.timestamp() * 1000),
        actor=fields.pop("actor", "anna@example.com"),
        type=fields.pop("type", "edit"),
        **fields,
    )


class TestNormalizeRole:
    """Test role key to label mapping"""

    def test_admin_roles(self):
        """Test all admin flavours map to Admin"""
        assert normalize_role("systemAdmin") == "Admin"
        assert normalize_role("orgAdmin") == "Admin"
        assert normalize_role("ADMIN") == "Admin"

    def test_manager_viewer_guest_roles(self):
        """Test the remaining known role families"""
        assert normalize_role("contentManager") == "Manager"
        assert normalize_role("contentViewer") == "Viewer"
        assert normalize_role("guest") == "Guest"

    def test_unknown_role_is_capitalized(self):
        """Test unknown roles keep their name with an upper-case first letter"""
        assert normalize_role("teamLead") == "TeamLead"
        assert normalize_role("member") == "Member"

    def test_empty_role(self):
        """Test missing roles give no label"""
        assert normalize_role(None) is None
        assert normalize_role("  ") is None


class TestApplyFilters:
    """Test the AND combination of audit filters"""

    def test_date_range_is_inclusive_local_days(self):
        """Test days 3..5 keep exactly the events of days 3, 4 and 5"""
        events = [event(f"e{day}", berlin(2025, 3, day)) for day in range(1, 8)]

        result = apply_filters(events, AuditFilter(start_date=date(2025, 3, 3), end_date=date(2025, 3, 5)), BERLIN)

        assert [e.id for e in result] == ["e3", "e4", "e5"]

    def test_day_boundaries_follow_timezone(self):
        """Test the range runs from local midnight to 23:59:59 local time"""
        events = [
            event("before", berlin(2025, 3, 2, 23, 59, 59)),
            event("first", berlin(2025, 3, 3, 0, 0, 0)),
            event("last", berlin(2025, 3, 5, 23, 59, 59)),
            event("after", berlin(2025, 3, 6, 0, 0, 0)),
        ]

        result = apply_filters(events, AuditFilter(start_date=date(2025, 3, 3), end_date=date(2025, 3, 5)), BERLIN)

        assert [e.id for e in result] == ["first", "last"]

    def test_open_ended_range(self):
        """Test a start date alone keeps everything from that day on"""
        events = [event(f"e{day}", berlin(2025, 3, day)) for day in range(1, 5)]

        result = apply_filters(events, AuditFilter(start_date=date(2025, 3, 3)), BERLIN)

        assert [e.id for e in result] == ["e3", "e4"]

    def test_free_text_matches_any_field(self):
        """Test the query is searched case-insensitively in title, note and path"""
        events = [
            event("title", berlin(2025, 3, 1), title="Invoice March"),
            event("note", berlin(2025, 3, 1), note="moved after invoice review"),
            event("path", berlin(2025, 3, 1), type="move", path="Finance/Invoices"),
            event("none", berlin(2025, 3, 1), title="Contract"),
        ]

        result = apply_filters(events, AuditFilter(query="INVOICE"), BERLIN)

        assert [e.id for e in result] == ["title", "note", "path"]

    def test_criteria_are_combined_with_and(self):
        """Test query, type and actor must all match"""
        events = [
            event("match", berlin(2025, 3, 1), type="delete", actor="bob@example.com", title="Invoice"),
            event("wrong-type", berlin(2025, 3, 1), type="edit", actor="bob@example.com", title="Invoice"),
            event("wrong-actor", berlin(2025, 3, 1), type="delete", actor="anna@example.com", title="Invoice"),
            event("wrong-text", berlin(2025, 3, 1), type="delete", actor="bob@example.com", title="Contract"),
        ]
        audit_filter = AuditFilter(query="invoice", types={"delete"}, actors={"bob@example.com"})

        assert [e.id for e in apply_filters(events, audit_filter, BERLIN)] == ["match"]

    def test_empty_filter_keeps_everything(self):
        """Test empty criteria match all events"""
        events = [event(f"e{i}", berlin(2025, 3, 1)) for i in range(5)]

        assert apply_filters(events, AuditFilter(), BERLIN) == events


class TestPaginate:
    """Test page slicing and clamping"""

    def test_thirty_seven_items_make_three_pages(self):
        """Test 37 items with 15 per page give 3 pages, the last with 7 items"""
        items = list(range(37))

        page_items, page, total_pages = paginate(items, 3, 15)

        assert total_pages == 3
        assert page == 3
        assert page_items == list(range(30, 37))

    def test_page_beyond_end_is_clamped(self):
        """Test requesting page 5 of 3 yields page 3"""
        page_items, page, total_pages = paginate(list(range(37)), 5, 15)

        assert (page, total_pages, len(page_items)) == (3, 3, 7)

    def test_empty_list_has_one_page(self):
        """Test no items still make one (empty) page"""
        assert paginate([], 0, 15) == ([], 1, 1)


class TestAuditQuery:
    """Test the correlated, cached audit feed"""

    @pytest.mark.asyncio
    async def test_events_newest_first_with_roles(self, audit_correlator, backend, org):
        """Test sorting and the three-step role resolution"""
        backend.add_user(ORG, "Anna@Example.com", "orgAdmin")
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1), actor_email="anna@example.com")
        backend.add_audit_event(ORG, "delete", berlin(2025, 3, 3), actor_email="bob@example.com", actor_role="contentViewer")
        backend.add_audit_event(ORG, "login", berlin(2025, 3, 2), actor_user_id="user-9")

        page = await audit_correlator.do_query(org, include_self=True)

        assert [(e.type, e.actor, e.role_label) for e in page.items] == [
            ("delete", "bob@example.com", "Viewer"),
            ("login", "user-9", "—"),
            ("edit", "anna@example.com", "Admin"),
        ]
        assert page.actors == ["anna@example.com", "bob@example.com", "user-9"]
        assert page.stale is False

    @pytest.mark.asyncio
    async def test_user_role_wins_over_event_role(self, audit_correlator, backend, org):
        """Test the current user list takes precedence over the role recorded on the event"""
        backend.add_user(ORG, "bob@example.com", "contentManager")
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1), actor_email="bob@example.com", actor_role="guest")

        page = await audit_correlator.do_query(org)

        assert page.items[0].role_label == "Manager"

    @pytest.mark.asyncio
    async def test_system_actor_without_identity(self, audit_correlator, backend, org):
        """Test events without email or user id are attributed to system"""
        backend.add_audit_event(ORG, "create", berlin(2025, 3, 1))

        page = await audit_correlator.do_query(org)

        assert page.items[0].actor == "system"
        assert page.items[0].role_label == "—"

    @pytest.mark.asyncio
    async def test_title_falls_back_to_document_listing(self, audit_correlator, backend, org):
        """Test a missing event title is taken from the organization's documents"""
        backend.add_document(ORG, "Supplier contract", id="doc-42")
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1), doc_id="doc-42")

        page = await audit_correlator.do_query(org)

        assert page.items[0].document_title == "Supplier contract"

    @pytest.mark.asyncio
    async def test_pagination_over_feed(self, audit_correlator, backend, org):
        """Test 37 events are served as 3 pages and page 5 is clamped"""
        for i in range(37):
            backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1, 8, i), actor_email="anna@example.com")

        page = await audit_correlator.do_query(org, page=5)

        assert page.page == 3
        assert page.total_pages == 3
        assert len(page.items) == 7
        assert page.filtered_count == 37
        assert page.total_count == 37

    @pytest.mark.asyncio
    async def test_date_filter_over_feed(self, audit_correlator, backend, org):
        """Test the date range applied to fetched events"""
        for day in range(1, 8):
            backend.add_audit_event(ORG, "edit", berlin(2025, 3, day), id=f"e{day}", actor_email="anna@example.com")

        page = await audit_correlator.do_query(
            org, AuditFilter(start_date=date(2025, 3, 3), end_date=date(2025, 3, 5))
        )

        assert [e.id for e in page.items] == ["e5", "e4", "e3"]
        assert page.filtered_count == 3
        assert page.total_count == 7

    @pytest.mark.asyncio
    async def test_include_self_toggles_backend_exclusion(self, audit_correlator, backend, org):
        """Test include_self refetches with excludeSelf=0 and shows the caller's events"""
        backend.self_email = "anna@example.com"
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1), actor_email="anna@example.com")
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 2), actor_email="bob@example.com")

        without_self = await audit_correlator.do_query(org, include_self=False)
        with_self = await audit_correlator.do_query(org, include_self=True)

        assert [p["excludeSelf"] for p in backend.audit_params] == ["1", "0"]
        assert backend.audit_params[0]["limit"] == "200"
        assert backend.audit_params[0]["coalesce"] == "1"
        assert without_self.actors == ["bob@example.com"]
        assert with_self.actors == ["anna@example.com", "bob@example.com"]

    @pytest.mark.asyncio
    async def test_failed_refresh_serves_stale_cache(self, audit_correlator, backend, org):
        """Test a failed refresh falls back to the last good feed, marked stale"""
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1), actor_email="anna@example.com")
        fresh = await audit_correlator.do_query(org)
        backend.add_audit_event(ORG, "delete", berlin(2025, 3, 2), actor_email="anna@example.com")
        backend.fail("audit", 500)

        stale = await audit_correlator.do_query(org)

        assert stale.stale is True
        assert [e.id for e in stale.items] == [e.id for e in fresh.items]

    @pytest.mark.asyncio
    async def test_failed_refresh_without_cache(self, audit_correlator, backend, org):
        """Test a failed first refresh raises NetworkError"""
        backend.fail("audit", "network")

        with pytest.raises(NetworkError):
            await audit_correlator.do_query(org)

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_previous_cache(self, audit_correlator, backend, org):
        """Test do_refresh raises without replacing the cached feed"""
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1), actor_email="anna@example.com")
        await audit_correlator.do_refresh(org)
        backend.fail("audit", 502)

        with pytest.raises(NetworkError):
            await audit_correlator.do_refresh(org)

        backend.fail("audit", 502)
        assert len((await audit_correlator.do_query(org)).items) == 1

    @pytest.mark.asyncio
    async def test_users_failure_is_not_fatal(self, audit_correlator, backend, org):
        """Test events are served without user roles when the user list fails"""
        backend.add_audit_event(ORG, "edit", berlin(2025, 3, 1), actor_email="anna@example.com", actor_role="orgAdmin")
        backend.fail("users", 500)

        page = await audit_correlator.do_query(org)

        assert page.items[0].role_label == "Admin"
        assert page.stale is False


class TestAuditAccess:
    """Test the audit access check"""

    @pytest.mark.asyncio
    async def test_access_granted(self, audit_correlator, org):
        """Test the backend answer is returned"""
        assert await audit_correlator.do_check_access(org) is True

    @pytest.mark.asyncio
    async def test_access_denied(self, audit_correlator, backend, org):
        """Test a forbidden answer means no access"""
        backend.fail("audit_access", 403)

        assert await audit_correlator.do_check_access(org) is False
