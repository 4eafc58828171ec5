from fastapi import APIRouter

router = APIRouter(prefix="/v1")

from .temp_files import router as temp_files

router.include_router(temp_files, tags=["temp-files"])
