from fastapi import APIRouter

# Compose modular sub-routers
from api import appreciations_router


router = APIRouter()

# main.py applies the `/api` prefix; sub-routers carry their own paths
router.include_router(appreciations_router)
