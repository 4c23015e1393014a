"""V1 API router - aggregates all versioned endpoints."""

from fastapi import APIRouter

from api.routers import audits, jobs, reports

router = APIRouter()

# Audit endpoints
router.include_router(audits.router)
router.include_router(audits.leads_router)

# Report endpoints
router.include_router(reports.router)

# Job endpoints
router.include_router(jobs.router)


@router.get("/")
async def v1_root() -> dict[str, str]:
    """V1 API root endpoint."""
    return {
        "version": "1",
        "status": "active",
    }
