import json

import httpx
import pytest

from seo_remediation.errors import FetchFailure, MutationFailure
from seo_remediation.schemas import EditResult, InternalLink
from seo_remediation.services.wordpress_service import MEDIA, POSTS, WordPressService


class FakeWordPress:
    """Just enough of /wp-json/wp/v2 to serve posts and media."""

    def __init__(self):
        self.items = {
            POSTS: {
                7: {
                    "id": 7,
                    "link": "https://example.com/hire-now/",
                    "title": {"raw": "Hire Now", "rendered": "Hire Now"},
                    "excerpt": {"raw": "Old excerpt", "rendered": "<p>Old excerpt</p>"},
                    "content": {"raw": "<p>Read our SEO guide today.</p>", "rendered": ""},
                },
            },
            MEDIA: {
                11: {"id": 11, "post": 7, "link": "https://example.com/team-jpg/", "alt_text": ""},
                12: {"id": 12, "post": 0, "link": "https://example.com/logo-png/", "alt_text": "Logo"},
            },
        }
        self.requests = []
        self.fail_writes = False

    def __call__(self, request):
        self.requests.append(request)
        parts = request.url.path.split("/wp-json/wp/v2/")[1].split("/")
        resource = parts[0]
        if len(parts) == 1:
            posts = sorted(self.items[resource].values(), key=lambda item: item["id"], reverse=True)
            per_page = int(request.url.params.get("per_page", 10))
            return httpx.Response(200, json=posts[:per_page])

        item = self.items[resource].get(int(parts[1]))
        if item is None:
            return httpx.Response(404, json={"code": "rest_post_invalid_id"})
        if request.method == "POST":
            if self.fail_writes:
                return httpx.Response(500, json={"code": "internal_error"})
            for field, value in json.loads(request.content).items():
                item[field] = {"raw": value} if isinstance(item.get(field), dict) else value
        return httpx.Response(200, json=item)

    def raw(self, resource, target_id, field):
        value = self.items[resource][target_id][field]
        return value["raw"] if isinstance(value, dict) else value


@pytest.fixture
def site():
    return FakeWordPress()


@pytest.fixture
def wp(site):
    service = WordPressService("https://example.com/", "editor", "app-pass", transport=httpx.MockTransport(site))
    yield service
    service.close()


def test_requests_go_to_rest_api_with_auth(wp, site):
    wp.get_post(7)

    request = site.requests[0]
    assert request.url.path == "/wp-json/wp/v2/posts/7"
    assert request.url.params["context"] == "edit"
    assert request.headers["Authorization"].startswith("Basic ")


def test_connection(wp, site):
    assert wp.test_connection()


def test_connection_failure():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = WordPressService("https://example.com", "u", "p", transport=httpx.MockTransport(refuse))
    assert not service.test_connection()


def test_latest_post_id(wp):
    assert wp.latest_post_id() == 7


def test_latest_post_id_without_posts(wp, site):
    site.items[POSTS].clear()

    with pytest.raises(FetchFailure, match="No posts found"):
        wp.latest_post_id()


def test_get_page_url(wp):
    assert wp.get_page_url(POSTS, 7) == "https://example.com/hire-now/"
    assert wp.get_page_url(MEDIA, 11) == "https://example.com/hire-now/"
    assert wp.get_page_url(MEDIA, 12) == "https://example.com/logo-png/"


def test_missing_post_is_a_fetch_failure(wp):
    with pytest.raises(FetchFailure, match="HTTP 404"):
        wp.get_page_url(POSTS, 99)


def test_update_meta_description_remembers_old_excerpt(wp, site):
    edit = wp.update_meta_description(7, "New excerpt")

    assert edit.success
    assert edit.previous_value == "Old excerpt"
    assert edit.message == "Excerpt updated for post ID 7"
    assert edit.model_dump()["field"] == "excerpt"
    assert site.raw(POSTS, 7, "excerpt") == "New excerpt"


def test_update_image_alt_text(wp, site):
    edit = wp.update_image_alt_text(11, "Our team")

    assert edit.resource == MEDIA
    assert edit.previous_value == ""
    assert edit.message == "Alt text updated for media item ID 11"
    assert site.raw(MEDIA, 11, "alt_text") == "Our team"


def test_add_schema_markup_appends_json_ld(wp, site):
    wp.add_schema_markup(7, {"@type": "Organization", "name": "Example"})

    content = site.raw(POSTS, 7, "content")
    assert content.startswith("<p>Read our SEO guide today.</p>")
    assert '<script type="application/ld+json">' in content
    assert '"@type": "Organization"' in content


def test_add_internal_links_wraps_first_match_only(wp, site):
    site.items[POSTS][7]["content"]["raw"] = "<p>Our seo guide and another SEO guide.</p>"

    edit = wp.add_internal_links(7, [InternalLink(anchor="SEO guide", url="/guide")])

    assert edit.previous_value == "<p>Our seo guide and another SEO guide.</p>"
    assert site.raw(POSTS, 7, "content") == '<p>Our <a href="/guide">seo guide</a> and another SEO guide.</p>'


def test_expand_content(wp, site):
    wp.expand_content(7, "<p>More detail.</p>")

    assert site.raw(POSTS, 7, "content").endswith("\n<p>More detail.</p>")


def test_failed_write_carries_the_edit(wp, site):
    site.fail_writes = True

    with pytest.raises(MutationFailure) as excinfo:
        wp.update_title(7, "Shorter")

    assert excinfo.value.edit.previous_value == "Hire Now"
    assert excinfo.value.edit.field == "title"


def test_unreadable_target_is_a_mutation_failure(wp):
    with pytest.raises(MutationFailure, match="Could not read") as excinfo:
        wp.update_title(99, "Title")

    assert excinfo.value.write_attempted is False
    assert excinfo.value.edit is None


def test_restore_writes_previous_value(wp, site):
    edit = wp.update_title(7, "Shorter")

    assert wp.restore(edit)
    assert site.raw(POSTS, 7, "title") == "Hire Now"


def test_restore_without_previous_value(wp, site):
    edit = EditResult(success=False, message="", resource=POSTS, target_id=7, field="content")

    assert not wp.restore(edit)
    assert site.requests == []


def test_restore_failure_returns_false(wp, site):
    edit = wp.update_title(7, "Shorter")
    site.fail_writes = True

    assert not wp.restore(edit)


def test_get_all_posts_pages_through_results(site):
    site.items[POSTS] = {n: {"id": n, "link": f"https://example.com/{n}/"} for n in range(1, 151)}
    pages = []

    def paged(request):
        page = int(request.url.params["page"])
        pages.append(page)
        posts = sorted(site.items[POSTS].values(), key=lambda item: item["id"])
        return httpx.Response(200, json=posts[(page - 1) * 100: page * 100])

    service = WordPressService("https://example.com", "u", "p", transport=httpx.MockTransport(paged))

    assert len(service.get_all_posts()) == 150
    assert pages == [1, 2]
