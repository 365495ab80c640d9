from fastapi import APIRouter

from app.api.routes.workout import delete
from app.api.routes.workout import history
from app.api.routes.workout import save

router = APIRouter()

router.include_router(delete.router, prefix="/api/workouts")
router.include_router(history.router, prefix="/api/workouts")
router.include_router(save.router, prefix="/api/workouts")
