"""
Pytest fixtures for codeloader tests
"""
import pytest
from unittest.mock import MagicMock, patch

from flask_jwt_extended import create_access_token

from codeloader import create_app
from codeloader.extensions import db
from codeloader.models.site import Site
from codeloader.models.page import Page
from codeloader.models.code_file import CodeFile
from codeloader.services.webflow import WebflowClient


@pytest.fixture
def app():
    """Testing app with a fresh in-memory database and memory cache"""
    app = create_app("testing")

    ctx = app.app_context()
    ctx.push()
    db.create_all()

    yield app

    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def site(app):
    site = Site()
    site.external_site_id = "wf-site-1"
    site.access_token = "wf-token"
    site.head_files = []
    site.body_files = []
    db.session.add(site)
    db.session.commit()
    return site


@pytest.fixture
def other_site(app):
    site = Site()
    site.external_site_id = "wf-site-2"
    site.head_files = []
    site.body_files = []
    db.session.add(site)
    db.session.commit()
    return site


@pytest.fixture
def make_file(site):
    """Factory for CodeFile rows on the default site"""
    def _make(name, language, code, target_site=None):
        code_file = CodeFile()
        code_file.site_id = (target_site or site).id
        code_file.name = name
        code_file.language = language
        code_file.code = code
        db.session.add(code_file)
        db.session.commit()
        return code_file
    return _make


@pytest.fixture
def make_page(site):
    """Factory for Page rows on the default site"""
    def _make(external_page_id, name="Page", head_files=None, body_files=None):
        page = Page()
        page.site_id = site.id
        page.external_page_id = external_page_id
        page.name = name
        page.head_files = head_files or []
        page.body_files = body_files or []
        db.session.add(page)
        db.session.commit()
        return page
    return _make


@pytest.fixture
def auth_headers(site):
    """Editor JWT + X-Site-ID for the default site"""
    token = create_access_token(identity="editor", additional_claims={"site_id": site.id})
    return {
        "Authorization": f"Bearer {token}",
        "X-Site-ID": str(site.id),
    }


@pytest.fixture
def webflow():
    """Mocked Webflow client handed out by client_for_site()"""
    client = MagicMock(spec=WebflowClient)
    client.register_inline_script.return_value = {"id": "script-1"}
    client.list_pages.return_value = []

    with patch.object(WebflowClient, "from_config", return_value=client):
        yield client
