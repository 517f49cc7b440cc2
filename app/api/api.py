from fastapi import APIRouter

from app.api.endpoints import auth, products, entries, exits, alerts, reports, users

api_router = APIRouter()

# Include all API endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(entries.router, prefix="/entries", tags=["Entries"])
api_router.include_router(exits.router, prefix="/exits", tags=["Exits"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
