from fastapi import APIRouter
from felka.api.v1.routes.auth import router as auth_router
from felka.api.v1.routes.cargo_scheduling import router as cargo_scheduling_router
from felka.api.v1.routes.external_persons import router as external_persons_router

api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(cargo_scheduling_router)
api_router.include_router(external_persons_router)
