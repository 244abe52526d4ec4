import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class AuditStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Severity(str, Enum):
    CRITICAL = "critical"
    MEDIUM = "medium"
    LOW = "low"


# Audit snapshot

class ImageData(BaseModel):
    src: str
    alt: Optional[str] = None
    size: Optional[int] = None


class PageData(BaseModel):
    url: str
    title: Optional[str] = None
    meta_description: Optional[str] = None
    h1: List[str] = []
    h2: List[str] = []
    word_count: int = 0
    images: List[ImageData] = []
    internal_links: List[str] = []
    external_links: List[str] = []
    broken_links: List[str] = []


class SEOIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    severity: Severity
    message: str
    page: Optional[str] = None
    count: Optional[int] = None


class AuditStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    seo_score: int = Field(ge=0, le=100)
    pages_analyzed: int = 0
    issue_count: int = 0
    opportunity_count: int = 0


class AuditSnapshot(BaseModel):
    """Results of one completed audit. Never modified once attached."""

    model_config = ConfigDict(frozen=True)

    pages: List[PageData] = []
    issues: List[SEOIssue] = []
    stats: AuditStats


class AuditCreate(BaseModel):
    url: str
    industry: str = "general"
    email: Optional[str] = None


class ProgressUpdate(BaseModel):
    progress: int = Field(ge=0, le=100)
    status: Optional[AuditStatus] = None


class AuditFailure(BaseModel):
    error_message: str


class AuditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    industry: str
    status: AuditStatus
    progress: int
    created_at: datetime
    completed_at: Optional[datetime] = None
    results: Optional[AuditSnapshot] = None
    original_score: Optional[int] = None
    error_message: Optional[str] = None


# Fix specs

class FixKind(str, Enum):
    META_DESCRIPTION = "meta_description"
    TITLE_TAG = "title_tag"
    ALT_TEXT = "alt_text"
    SCHEMA = "schema"
    INTERNAL_LINKS = "internal_links"
    TITLE_SHORTENING = "title_shortening"
    CONTENT_EXPANSION = "content_expansion"


# Issue type written to the ledger when a fix of each kind commits
DEFAULT_ISSUE_TYPES: Dict[FixKind, str] = {
    FixKind.META_DESCRIPTION: "Missing Meta Description",
    FixKind.TITLE_TAG: "Missing Title Tag",
    FixKind.ALT_TEXT: "Missing Alt Text",
    FixKind.SCHEMA: "Missing Schema Markup",
    FixKind.INTERNAL_LINKS: "Missing Internal Links",
    FixKind.TITLE_SHORTENING: "Title Too Long",
    FixKind.CONTENT_EXPANSION: "Thin Content",
}


class _FixSpecBase(BaseModel):
    target_id: int = Field(default=0, ge=0)
    current_value: str = ""
    new_value: str
    description: str = ""
    # issue_type overrides the ledger key; page_url, when given, must be the
    # page the target resolves to or the fix is refused
    issue_type: Optional[str] = None
    page_url: Optional[str] = None

    @property
    def ledger_issue_type(self) -> str:
        return self.issue_type or DEFAULT_ISSUE_TYPES[FixKind(self.kind)]


class MetaDescriptionFix(_FixSpecBase):
    kind: Literal["meta_description"] = "meta_description"


class TitleFix(_FixSpecBase):
    kind: Literal["title_tag"] = "title_tag"


class AltTextFix(_FixSpecBase):
    kind: Literal["alt_text"] = "alt_text"


class SchemaFix(_FixSpecBase):
    kind: Literal["schema"] = "schema"

    @field_validator("new_value")
    @classmethod
    def check_schema_json(cls, value: str) -> str:
        try:
            parsed = json.loads(value)
        except ValueError as exc:
            raise ValueError(f"Invalid schema JSON format: {exc}") from exc
        if not isinstance(parsed, (dict, list)):
            raise ValueError("Schema markup must be a JSON object or array")
        return value

    @property
    def schema_data(self) -> Any:
        return json.loads(self.new_value)


class InternalLink(BaseModel):
    anchor: str = Field(min_length=1)
    url: str = Field(min_length=1)


_links_adapter = TypeAdapter(List[InternalLink])


class InternalLinksFix(_FixSpecBase):
    kind: Literal["internal_links"] = "internal_links"

    @field_validator("new_value")
    @classmethod
    def check_links_json(cls, value: str) -> str:
        _links_adapter.validate_json(value)
        return value

    @property
    def links(self) -> List[InternalLink]:
        return _links_adapter.validate_json(self.new_value)


class TitleShorteningFix(_FixSpecBase):
    kind: Literal["title_shortening"] = "title_shortening"


class ContentExpansionFix(_FixSpecBase):
    kind: Literal["content_expansion"] = "content_expansion"


FixSpec = Annotated[
    Union[
        MetaDescriptionFix,
        TitleFix,
        AltTextFix,
        SchemaFix,
        InternalLinksFix,
        TitleShorteningFix,
        ContentExpansionFix,
    ],
    Field(discriminator="kind"),
]

_fix_spec_adapter = TypeAdapter(FixSpec)


def parse_fix_spec(data: Dict[str, Any]):
    return _fix_spec_adapter.validate_python(data)


class EditResult(BaseModel):
    """One field write on the content system, with the value it replaced."""

    success: bool
    message: str
    resource: str
    target_id: int
    field: str
    previous_value: Optional[str] = None


class FixOutcome(str, Enum):
    COMMITTED = "committed"
    FETCH_FAILED = "fetch_failed"
    PRECONDITION_FAILED = "precondition_failed"
    UNSUPPORTED_FIX_KIND = "unsupported_fix_kind"
    MUTATION_FAILED = "mutation_failed"
    INTEGRITY_REGRESSION = "integrity_regression"
    ROLLBACK_FAILED = "rollback_failed"
    LEDGER_FAILED = "ledger_failed"


# Integrity

class IntegrityReport(BaseModel):
    is_valid: bool
    has_valid_doctype: bool = False
    has_single_html_root: bool = False
    has_single_head: bool = False
    has_single_body: bool = False
    meta_tag_count: int = 0
    critical_errors: List[str] = []
    warnings: List[str] = []
    unclosed_tags: List[str] = []
    structure_hash: str = ""


class IntegrityComparison(BaseModel):
    has_structural_changes: bool
    new_errors: List[str] = []
    resolved_errors: List[str] = []
    integrity_maintained: bool


class FixResult(BaseModel):
    success: bool
    message: str
    outcome: FixOutcome
    rollback_attempted: bool = False
    rollback_performed: Optional[bool] = None
    manual_intervention_required: bool = False
    page_url: Optional[str] = None
    integrity: Optional[IntegrityComparison] = None


class BatchFixItem(BaseModel):
    fix: FixSpec
    result: FixResult


class ApplyFixRequest(BaseModel):
    fix: FixSpec


class BatchFixRequest(BaseModel):
    fixes: List[FixSpec]


class BatchFixResponse(BaseModel):
    results: List[BatchFixItem]


class IntegrityCheckRequest(BaseModel):
    url: str


class IntegrityCheckResponse(BaseModel):
    url: str
    integrity: IntegrityReport


class RepairAction(BaseModel):
    issue: str
    solution: str
    code_example: str
    risk_level: Literal["low", "medium", "high"]
    estimated_time: str


class RepairPlan(BaseModel):
    page_url: str
    current_issues: List[str]
    repair_actions: List[RepairAction]
    expected_outcome: str
    backup_required: bool


class RepairValidation(BaseModel):
    is_repaired: bool
    remaining_issues: List[str]
    ready_for_seo_fixes: bool


# Ledger

class FixRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: int
    issue_type: str
    page_url: str
    normalized_url: str
    fixed_at: datetime
    fix_details: Optional[Dict[str, Any]] = None


class MarkFixedRequest(BaseModel):
    issue_type: str
    page_url: str
    fix_details: Optional[Dict[str, Any]] = None


class RevertFixRequest(BaseModel):
    issue_type: str
    page_url: str


class RecentFix(BaseModel):
    issue_type: str
    page_url: str
    fixed_at: datetime


class FixSummary(BaseModel):
    total_fixed: int
    by_type: Dict[str, int]
    recent_fixes: List[RecentFix]


# Derived view

class DerivedView(BaseModel):
    issues: List[SEOIssue]
    stats: AuditStats


class FixImpact(BaseModel):
    description: str
    recommendation: str


class FixedIssuesReport(BaseModel):
    original_score: int
    improved_score: int
    score_improvement: int
    original_issues: int
    remaining_issues: int
    fixed_summary: FixSummary
    impact: FixImpact
