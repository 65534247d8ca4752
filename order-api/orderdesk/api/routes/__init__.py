from fastapi import APIRouter
from orderdesk.api.routes import public, agent, print_jobs, jobs

api_router = APIRouter()
api_router.include_router(public.router, tags=["public"])
api_router.include_router(agent.router, tags=["agent"])
api_router.include_router(print_jobs.router, tags=["print-jobs"])

api_router.include_router(jobs.router, tags=["jobs"])
