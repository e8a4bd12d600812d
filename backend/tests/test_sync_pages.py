"""
Tests for the page reconciler
"""
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query

from codeloader.extensions import db, edge_cache
from codeloader.models.audit_log import AuditLog
from codeloader.models.page import Page
from codeloader.models.site import Site
from codeloader.services.webflow import WebflowAPIError
from codeloader.application.sync.sync_pages import (
    dedupe_remote_pages,
    reconcile_pages,
    sync_all_sites,
    sync_site_pages,
)


def failing_page_reads(count):
    """Query.all replacement whose first `count` Page reads raise."""
    real_all = Query.all
    failures = []

    def fake_all(self):
        if self.column_descriptions[0]["entity"] is Page and len(failures) < count:
            failures.append(self)
            raise OperationalError("SELECT pages", {}, Exception("database is locked"))
        return real_all(self)

    return fake_all


def local_pages(site):
    return {
        p.external_page_id: p
        for p in Page.query.filter_by(site_id=site.id).order_by(Page.id).all()
    }


class TestReconcilePages:
    """Local rows converge on the remote listing"""

    def test_inserts_new_pages_with_empty_lists(self, site):
        result = reconcile_pages(site, [
            {"id": "p1", "displayName": "Home"},
            {"id": "p2", "slug": "about-us"},
        ])

        assert result["success"] is True
        assert result["added"] == 2
        assert result["page_count"] == 2

        pages = local_pages(site)
        assert set(pages) == {"p1", "p2"}
        assert pages["p2"].name == "About Us"
        assert pages["p1"].file_ids("head") == []
        assert pages["p1"].file_ids("body") == []

    def test_rename_never_touches_file_lists(self, site, make_page):
        make_page("p1", name="Old", head_files=[3, 1], body_files=[2])

        result = reconcile_pages(site, [{"id": "p1", "displayName": "New"}])

        assert result["updated"] == 1
        db.session.expire_all()
        page = local_pages(site)["p1"]
        assert page.name == "New"
        assert page.file_ids("head") == [3, 1]
        assert page.file_ids("body") == [2]

    def test_unchanged_pages_are_not_updated(self, site, make_page):
        make_page("p1", name="Same")

        result = reconcile_pages(site, [{"id": "p1", "name": "Same"}])

        assert result["updated"] == 0
        assert AuditLog.query.filter_by(action="pages.sync").count() == 0

    def test_deletes_pages_missing_remotely(self, site, make_page):
        make_page("keep", name="Keep")
        make_page("gone", name="Gone")

        result = reconcile_pages(site, [{"id": "keep", "name": "Keep"}])

        assert result["deleted"] == 1
        assert set(local_pages(site)) == {"keep"}

    def test_deletion_purges_cached_bundles(self, site, make_page):
        page = make_page("gone", name="Gone")
        page_id = page.id
        edge_cache.put(f"bundle:page:{page_id}:head", "{}", 60)
        edge_cache.put(f"bundle:page:{page_id}:body", "{}", 60)

        reconcile_pages(site, [])

        assert edge_cache.get(f"bundle:page:{page_id}:head") is None
        assert edge_cache.get(f"bundle:page:{page_id}:body") is None

    def test_other_sites_are_untouched(self, site, other_site):
        page = Page()
        page.site_id = other_site.id
        page.external_page_id = "foreign"
        page.name = "Foreign"
        page.head_files = []
        page.body_files = []
        db.session.add(page)
        db.session.commit()

        reconcile_pages(site, [])

        assert Page.query.filter_by(site_id=other_site.id).count() == 1

    def test_duplicate_remote_ids_last_wins(self, site):
        result = reconcile_pages(site, [
            {"id": "p1", "name": "First"},
            {"id": "p1", "name": "Second"},
        ])

        assert result["added"] == 1
        assert local_pages(site)["p1"].name == "Second"

    def test_writes_audit_entry(self, site):
        reconcile_pages(site, [{"id": "p1", "name": "A"}])

        entry = AuditLog.query.filter_by(action="pages.sync").one()
        assert entry.entity_id == "wf-site-1"
        assert entry.payload["added"] == 1
        assert entry.actor is None

    def test_failed_phase_stops_run_and_reports_it(self, site, make_page):
        make_page("p1", name="Old")
        make_page("gone", name="Gone")

        real_execute = db.session.execute
        calls = []

        def flaky(statement, *args, **kwargs):
            calls.append(statement)
            if len(calls) == 2:
                raise OperationalError("UPDATE pages", {}, Exception("disk I/O error"))
            return real_execute(statement, *args, **kwargs)

        with patch.object(db.session, "execute", side_effect=flaky):
            result = reconcile_pages(site, [
                {"id": "p1", "name": "New"},
                {"id": "p2", "name": "Added"},
            ])

        assert result["success"] is False
        assert result["phase"] == "update"
        assert "disk I/O error" in result["error"]
        assert result["added"] == 1
        assert result["updated"] == 0
        assert result["deleted"] == 0

        # Insert committed, delete never ran
        assert set(local_pages(site)) == {"p1", "p2", "gone"}

    def test_load_failure_is_reported(self, site, make_page):
        make_page("p1", name="Home")

        with patch.object(Query, "all", new=failing_page_reads(1)):
            result = reconcile_pages(site, [{"id": "p2", "name": "Other"}])

        assert result["success"] is False
        assert result["phase"] == "load"
        assert result["added"] == 0
        assert set(local_pages(site)) == {"p1"}

    def test_second_run_is_a_no_op(self, site):
        remote = [{"id": "p1", "name": "Home"}, {"id": "p2", "name": "About"}]
        reconcile_pages(site, remote)

        result = reconcile_pages(site, remote)

        assert result["success"] is True
        assert (result["added"], result["updated"], result["deleted"]) == (0, 0, 0)
        assert AuditLog.query.filter_by(action="pages.sync").count() == 1

    def test_every_missing_page_is_deleted(self, site, make_page):
        for external_id in ("a", "b", "c"):
            make_page(external_id, name=external_id.upper())

        result = reconcile_pages(site, [{"id": "a", "name": "A"}])

        assert result["deleted"] == 2
        assert set(local_pages(site)) == {"a"}


class TestDedupeRemotePages:
    """Remote listing indexing"""

    def test_keeps_first_position(self, app):
        remote = dedupe_remote_pages([
            {"id": "a", "name": "1"},
            {"id": "b", "name": "2"},
            {"id": "a", "name": "3"},
        ])
        assert list(remote) == ["a", "b"]
        assert remote["a"]["name"] == "3"

    def test_skips_records_without_id(self, app):
        assert list(dedupe_remote_pages([{"name": "orphan"}, {"id": "x"}])) == ["x"]


class TestSyncSitePages:
    """Fetch + reconcile"""

    def test_uses_remote_listing(self, site):
        client = MagicMock()
        client.list_pages.return_value = [{"id": "p1", "name": "Home"}]

        result = sync_site_pages(site, client_factory=lambda s: client)

        client.list_pages.assert_called_once_with("wf-site-1")
        assert result["added"] == 1

    def test_fetch_failure_reported(self, site, make_page):
        make_page("p1")
        client = MagicMock()
        client.list_pages.side_effect = WebflowAPIError(500, None, "upstream down")

        result = sync_site_pages(site, client_factory=lambda s: client)

        assert result["success"] is False
        assert result["phase"] == "fetch"
        # Nothing deleted on a failed listing
        assert set(local_pages(site)) == {"p1"}


class TestSyncAllSites:
    """Bulk sync across sites"""

    def test_only_authorized_sites(self, site, other_site):
        client = MagicMock()
        client.list_pages.return_value = [{"id": "p1", "name": "Home"}]

        results = sync_all_sites(client_factory=lambda s: client)

        assert [r["site_id"] for r in results] == ["wf-site-1"]

    def test_one_failure_does_not_stop_others(self, site, app):
        second = Site()
        second.external_site_id = "wf-site-3"
        second.access_token = "tok-3"
        second.head_files = []
        second.body_files = []
        db.session.add(second)
        db.session.commit()

        def factory(s):
            client = MagicMock()
            if s.external_site_id == "wf-site-1":
                client.list_pages.side_effect = WebflowAPIError(401, "not_authorized", "bad token")
            else:
                client.list_pages.return_value = [{"id": "p9", "name": "Nine"}]
            return client

        results = sync_all_sites(client_factory=factory)

        assert [r["success"] for r in results] == [False, True]
        assert results[1]["added"] == 1

    def test_read_failure_on_one_site_does_not_stop_others(self, site, app):
        second = Site()
        second.external_site_id = "wf-site-3"
        second.access_token = "tok-3"
        second.head_files = []
        second.body_files = []
        db.session.add(second)
        db.session.commit()

        client = MagicMock()
        client.list_pages.return_value = [{"id": "p9", "name": "Nine"}]

        with patch.object(Query, "all", new=failing_page_reads(1)):
            results = sync_all_sites(client_factory=lambda s: client)

        assert [r["site_id"] for r in results] == ["wf-site-1", "wf-site-3"]
        assert [r["success"] for r in results] == [False, True]
        assert results[0]["phase"] == "load"
        assert results[1]["added"] == 1
        assert set(local_pages(second)) == {"p9"}
        assert local_pages(site) == {}
