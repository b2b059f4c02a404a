"""API routers."""

from store_survey.routers.survey import router as survey_router
from store_survey.routers.uploads import router as uploads_router

__all__ = [
    "survey_router",
    "uploads_router",
]
