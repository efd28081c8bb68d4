from fastapi import APIRouter

from leavecore.api.balances import balances_router, provisioning_router
from leavecore.api.documents import documents_router
from leavecore.api.employees import employees_router
from leavecore.api.holidays import holidays_router
from leavecore.api.leave_types import leave_types_router
from leavecore.api.requests import requests_router
from leavecore.api.team import team_router

api_router = APIRouter()
api_router.include_router(requests_router)
api_router.include_router(team_router)
api_router.include_router(balances_router)
api_router.include_router(leave_types_router)
api_router.include_router(documents_router)
api_router.include_router(holidays_router)
api_router.include_router(provisioning_router)
api_router.include_router(employees_router)
