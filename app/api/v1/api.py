from fastapi import APIRouter

from app.api.v1.endpoints import questions, blueprints, papers

api_router = APIRouter()

# Question pool: upload, listing, per-subject stats
api_router.include_router(questions.router, prefix="/questions", tags=["Questions"])

# Blueprints: pool metadata, create / update with feasibility checks
api_router.include_router(blueprints.router, prefix="/blueprints", tags=["Blueprints"])

# Paper generation, retrieval and PDF download
api_router.include_router(papers.router, prefix="/papers", tags=["Papers"])
