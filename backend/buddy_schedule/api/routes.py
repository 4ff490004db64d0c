from fastapi import APIRouter
from buddy_schedule.api import auth, users, schedule, shifts, templates, utils

api_router = APIRouter()

# Public routers
api_router.include_router(auth.router)
api_router.include_router(utils.router)

# Routers that require a bearer token
api_router.include_router(users.router)
api_router.include_router(schedule.router)
api_router.include_router(templates.router)
api_router.include_router(shifts.router)
