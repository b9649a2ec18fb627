from fastapi import APIRouter
from housemate.api.v1.endpoints import bills, members, settlements, summary

api_router = APIRouter()

api_router.include_router(bills.router, prefix="/bills", tags=["bills"])
api_router.include_router(settlements.router, prefix="/settlements", tags=["settlements"])
api_router.include_router(summary.router, prefix="/summary", tags=["summary"])
api_router.include_router(members.router, prefix="/members", tags=["members"])
