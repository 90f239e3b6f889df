from fastapi import APIRouter
from rentdesk.api.v1.routes.bookings import router as bookings_router
from rentdesk.api.v1.routes.payments import router as payments_router
from rentdesk.api.v1.routes.reminders import router as reminders_router
from rentdesk.api.v1.routes.admin import router as admin_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings_router)
api_router.include_router(payments_router)
api_router.include_router(reminders_router)
api_router.include_router(admin_router)
