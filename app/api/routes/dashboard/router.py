from fastapi import APIRouter

from app.api.routes.dashboard import stats
from app.api.routes.dashboard import trend

router = APIRouter(prefix="/api/dashboard")

router.include_router(stats.router)
router.include_router(trend.router)
