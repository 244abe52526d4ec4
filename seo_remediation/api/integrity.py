import logging

from fastapi import APIRouter, Depends, HTTPException

from seo_remediation.dependencies import get_content_service, get_integrity_service, get_repair_service
from seo_remediation.errors import FetchFailure
from seo_remediation.schemas import (
    IntegrityCheckRequest,
    IntegrityCheckResponse,
    RepairPlan,
    RepairValidation,
)
from seo_remediation.services.html_integrity import HTMLIntegrityService
from seo_remediation.services.html_repair import HTMLRepairService
from seo_remediation.services.wordpress_service import WordPressService, raw_field

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/test-html-integrity", response_model=IntegrityCheckResponse)
def check_html_integrity(
    request: IntegrityCheckRequest,
    integrity: HTMLIntegrityService = Depends(get_integrity_service),
):
    """Report whether a page is structurally safe for automated edits"""
    return IntegrityCheckResponse(url=request.url, integrity=integrity.check_integrity(request.url))


@router.post("/html-repair/plan", response_model=RepairPlan)
def plan_html_repair(request: IntegrityCheckRequest, repair: HTMLRepairService = Depends(get_repair_service)):
    return repair.analyze_repair_needs(request.url)


@router.post("/html-repair/validate", response_model=RepairValidation)
def validate_html_repair(request: IntegrityCheckRequest, repair: HTMLRepairService = Depends(get_repair_service)):
    return repair.validate_repair(request.url)


@router.get("/wordpress/test-connection")
def test_wordpress_connection(content: WordPressService = Depends(get_content_service)):
    connected = content.test_connection()
    return {
        "connected": connected,
        "message": "WordPress connection successful" if connected else "WordPress connection failed",
    }


@router.get("/wordpress/all-content")
def list_wordpress_content(content: WordPressService = Depends(get_content_service)):
    """Published posts with the ids fixes can target"""
    try:
        posts = content.get_all_posts()
    except FetchFailure as e:
        logger.error("WordPress content fetch error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch WordPress content")
    return [
        {"id": post["id"], "link": post.get("link"), "title": raw_field(post.get("title"))}
        for post in posts
    ]
