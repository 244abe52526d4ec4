import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from seo_remediation import models  # noqa: F401
from seo_remediation.database import Base
from seo_remediation.schemas import EditResult
from seo_remediation.services.fix_ledger import FixLedger
from seo_remediation.services.fix_store import InMemoryFixStore
from seo_remediation.services.html_integrity import HTMLIntegrityService
from seo_remediation.services.safe_remediation import SafeRemediationService
from seo_remediation.services.wordpress_service import MEDIA, POSTS

PAGE_URL = "https://example.com/hire-now/"

VALID_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Hire Now</title>
  <meta name="description" content="Old description">
</head>
<body>
  <div class="main"><h1>Hire now</h1><p>Some text<br>more text</p></div>
  <img src="/team.jpg" alt="">
</body>
</html>"""

# Same page after a meta description edit: only attribute text differs
VALID_HTML_NEW_META = VALID_HTML.replace("Old description", "A much better description")

# The edit dropped a closing </div>
BROKEN_HTML = VALID_HTML.replace("</p></div>", "</p>")


class StubFetcher:
    """Serves canned HTML per URL; a list is consumed in order, its last item repeats."""

    def __init__(self, responses):
        self.responses = {url: list(items) if isinstance(items, list) else [items] for url, items in responses.items()}
        self.calls = []

    def __call__(self, url):
        self.calls.append(url)
        queue = self.responses[url]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeContentSystem:
    """In-memory stand-in for the WordPress client."""

    def __init__(self, page_url=PAGE_URL, fail_edit=False, raise_on_edit=None, fail_restore=False, page_urls=None):
        self.page_url = page_url
        self.page_urls = page_urls or {}
        self.fail_edit = fail_edit
        self.raise_on_edit = raise_on_edit
        self.fail_restore = fail_restore
        self.fields = {}
        self.edits = []
        self.restored = []

    def latest_post_id(self):
        return 42

    def get_page_url(self, resource, target_id):
        return self.page_urls.get(target_id, self.page_url)

    def _edit(self, resource, target_id, field, value):
        self.edits.append((resource, target_id, field, value))
        if self.raise_on_edit is not None:
            raise self.raise_on_edit
        key = (resource, target_id, field)
        previous = self.fields.get(key, "old value")
        if self.fail_edit:
            return EditResult(
                success=False,
                message="Content system rejected the edit",
                resource=resource,
                target_id=target_id,
                field=field,
                previous_value=previous,
            )
        self.fields[key] = value
        return EditResult(
            success=True,
            message=f"{field} updated",
            resource=resource,
            target_id=target_id,
            field=field,
            previous_value=previous,
        )

    def update_meta_description(self, post_id, value):
        return self._edit(POSTS, post_id, "excerpt", value)

    def update_title(self, post_id, value):
        return self._edit(POSTS, post_id, "title", value)

    def update_image_alt_text(self, media_id, value):
        return self._edit(MEDIA, media_id, "alt_text", value)

    def add_schema_markup(self, post_id, schema_data):
        return self._edit(POSTS, post_id, "content", json.dumps(schema_data))

    def add_internal_links(self, post_id, links):
        return self._edit(POSTS, post_id, "content", json.dumps([link.model_dump() for link in links]))

    def expand_content(self, post_id, html):
        return self._edit(POSTS, post_id, "content", html)

    def restore(self, edit):
        self.restored.append(edit)
        if self.fail_restore:
            return False
        self.fields[(edit.resource, edit.target_id, edit.field)] = edit.previous_value
        return True


class TickingClock:
    def __init__(self, start=datetime(2024, 5, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def ledger():
    return FixLedger(InMemoryFixStore(), aliases={}, clock=TickingClock())


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_remediation(ledger, sleeps):
    def factory(fetcher, content=None):
        return SafeRemediationService(
            integrity=HTMLIntegrityService(fetch=fetcher),
            content=content or FakeContentSystem(),
            ledger=ledger,
            propagation_delay=3,
            batch_delay=1,
            sleep=sleeps.append,
        )

    return factory
