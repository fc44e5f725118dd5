from fastapi import APIRouter
from . import admin
from . import auth
from . import contact
from . import dashboard
from . import quote
from . import shipments
from . import tracking

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(quote.router, prefix="/quotes", tags=["Quotes"])
router.include_router(shipments.router, prefix="/shipments", tags=["Shipments"])
router.include_router(tracking.router, prefix="/tracking", tags=["Tracking"])
router.include_router(contact.router, prefix="/contact", tags=["Contact"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
