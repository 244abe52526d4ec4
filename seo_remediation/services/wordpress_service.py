"""Client for the external content system (WordPress REST API, ``/wp-json/wp/v2``).

Every edit reads the field it is about to overwrite first, so the caller
gets back an :class:`~seo_remediation.schemas.EditResult` that can drive a
rollback.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from seo_remediation import config
from seo_remediation.errors import FetchFailure, MutationFailure
from seo_remediation.schemas import EditResult, InternalLink

logger = logging.getLogger(__name__)

POSTS = "posts"
MEDIA = "media"


def raw_field(value: Any) -> str:
    # Fields come back as {"raw": ..., "rendered": ...} under context=edit
    if isinstance(value, dict):
        return value.get("raw", value.get("rendered", "")) or ""
    return value or ""


class WordPressService:
    def __init__(
        self,
        site_url: str = config.WP_SITE_URL,
        username: str = config.WP_USERNAME,
        password: str = config.WP_APP_PASSWORD,
        timeout: float = config.WP_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.site_url = site_url.rstrip("/")
        self.base_url = f"{self.site_url}/wp-json/wp/v2"
        self.client = httpx.Client(
            base_url=self.base_url,
            auth=(username, password),
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def close(self):
        self.client.close()

    def test_connection(self) -> bool:
        try:
            response = self.client.get(f"/{POSTS}", params={"per_page": 1})
        except httpx.HTTPError as e:
            logger.warning("WordPress connection test failed: %s", e)
            return False
        return response.status_code == 200

    def get_all_posts(self) -> List[Dict[str, Any]]:
        posts: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch = self._get(f"/{POSTS}", params={"per_page": 100, "page": page, "status": "publish"})
            posts.extend(batch)
            if len(batch) < 100:
                return posts
            page += 1

    def latest_post_id(self) -> int:
        posts = self._get(f"/{POSTS}", params={"per_page": 1, "status": "publish", "orderby": "date"})
        if not posts:
            raise FetchFailure("No posts found to apply SEO fix")
        return int(posts[0]["id"])

    def get_post(self, post_id: int) -> Dict[str, Any]:
        return self._get(f"/{POSTS}/{post_id}", params={"context": "edit"})

    def get_media(self, media_id: int) -> Dict[str, Any]:
        return self._get(f"/{MEDIA}/{media_id}", params={"context": "edit"})

    def get_page_url(self, resource: str, target_id: int) -> str:
        """Public URL of the page an edit to ``resource``/``target_id`` shows up on."""
        if resource == MEDIA:
            media = self.get_media(target_id)
            parent = media.get("post")
            if parent:
                return self.get_post(int(parent))["link"]
            return media["link"]
        return self.get_post(target_id)["link"]

    # Edits

    def update_meta_description(self, post_id: int, meta_description: str) -> EditResult:
        # The excerpt doubles as the meta description for most SEO plugins
        return self._replace_field(POSTS, post_id, "excerpt", meta_description)

    def update_title(self, post_id: int, title: str) -> EditResult:
        return self._replace_field(POSTS, post_id, "title", title)

    def update_image_alt_text(self, media_id: int, alt_text: str) -> EditResult:
        return self._replace_field(MEDIA, media_id, "alt_text", alt_text)

    def add_schema_markup(self, post_id: int, schema_data: Any) -> EditResult:
        script = (
            '\n<script type="application/ld+json">\n'
            f"{json.dumps(schema_data, indent=2)}\n"
            "</script>"
        )
        return self._edit_content(post_id, lambda content: content + script, "Schema markup added")

    def add_internal_links(self, post_id: int, links: List[InternalLink]) -> EditResult:
        def link_anchors(content: str) -> str:
            for link in links:
                pattern = re.compile(rf"\b{re.escape(link.anchor)}\b", re.IGNORECASE)
                content = pattern.sub(
                    lambda m: f'<a href="{link.url}">{m.group(0)}</a>', content, count=1
                )
            return content

        return self._edit_content(post_id, link_anchors, "Internal links added")

    def expand_content(self, post_id: int, html: str) -> EditResult:
        return self._edit_content(post_id, lambda content: content + "\n" + html, "Content expanded")

    def restore(self, edit: EditResult) -> bool:
        """Write ``edit.previous_value`` back to the edited field."""
        if edit.previous_value is None:
            return False
        try:
            self._post(f"/{edit.resource}/{edit.target_id}", {edit.field: edit.previous_value})
        except MutationFailure as e:
            logger.error("Restore of %s %s.%s failed: %s", edit.resource, edit.target_id, edit.field, e)
            return False
        return True

    # Helpers

    def _replace_field(self, resource: str, target_id: int, field: str, value: str) -> EditResult:
        current = self._read(resource, target_id)
        edit = EditResult(
            success=False,
            message="",
            resource=resource,
            target_id=target_id,
            field=field,
            previous_value=raw_field(current.get(field)),
        )
        self._write(edit, {field: value})
        edit.success = True
        label = "post" if resource == POSTS else "media item"
        edit.message = f"{field.replace('_', ' ').capitalize()} updated for {label} ID {target_id}"
        return edit

    def _edit_content(self, post_id: int, transform, message: str) -> EditResult:
        current = self._read(POSTS, post_id)
        previous = raw_field(current.get("content"))
        edit = EditResult(
            success=False,
            message="",
            resource=POSTS,
            target_id=post_id,
            field="content",
            previous_value=previous,
        )
        self._write(edit, {"content": transform(previous)})
        edit.success = True
        edit.message = f"{message} for post ID {post_id}"
        return edit

    def _read(self, resource: str, target_id: int) -> Dict[str, Any]:
        try:
            return self._get(f"/{resource}/{target_id}", params={"context": "edit"})
        except FetchFailure as e:
            raise MutationFailure(f"Could not read {resource} {target_id}: {e}", write_attempted=False) from e

    def _write(self, edit: EditResult, payload: Dict[str, Any]):
        try:
            self._post(f"/{edit.resource}/{edit.target_id}", payload)
        except MutationFailure as e:
            raise MutationFailure(str(e), edit=edit) from e

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.client.get(path, params=params)
        except httpx.HTTPError as e:
            raise FetchFailure(f"GET {path} failed: {e}") from e
        if response.status_code != 200:
            raise FetchFailure(f"GET {path} returned HTTP {response.status_code}")
        return response.json()

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise MutationFailure(f"POST {path} timed out") from e
        except httpx.HTTPError as e:
            raise MutationFailure(f"POST {path} failed: {e}") from e
        if response.status_code not in (200, 201):
            raise MutationFailure(f"POST {path} returned HTTP {response.status_code}")
        return response.json()
