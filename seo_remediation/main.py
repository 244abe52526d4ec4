import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from seo_remediation import config
from seo_remediation.api import audits, fixes, integrity
from seo_remediation.database import SessionLocal, init_db
from seo_remediation.models import Audit, FixRecordRow

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not config.WP_SITE_URL:
        logger.warning("WP_SITE_URL is not set; fixes cannot be applied to a live site")
    yield


app = FastAPI(title="SEO Safe Remediation API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(audits.router, prefix="/api/audits", tags=["audits"])
app.include_router(fixes.router, prefix="/api/audits", tags=["fixes"])
app.include_router(integrity.router, prefix="/api", tags=["integrity"])


@app.get("/")
def health_check():
    return {"status": "healthy", "message": "SEO Safe Remediation API is running"}


@app.get("/api/health")
def api_health():
    try:
        with SessionLocal() as db:
            total_audits = db.query(Audit).count()
            total_fixes = db.query(FixRecordRow).count()
        return {"status": "healthy", "database": "connected", "total_audits": total_audits, "total_fixes": total_fixes}
    except Exception as e:
        logger.error("Health check database error: %s", e)
        return {"status": "unhealthy", "database": "error", "error": str(e)}


if __name__ == "__main__":
    import uvicorn

    logger.info("Database: %s", config.DATABASE_URL)
    uvicorn.run(app, host="0.0.0.0", port=8000)
