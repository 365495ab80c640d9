from fastapi import APIRouter

from app.api.routes.plan import detail
from app.api.routes.plan import generate
from app.api.routes.plan import list_all
from app.api.routes.plan import usage

router = APIRouter()

router.include_router(generate.router, prefix="/api/ai/plan")
router.include_router(list_all.router, prefix="/api/ai/plan")
router.include_router(detail.router, prefix="/api/plans")
router.include_router(usage.router)
