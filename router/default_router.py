from fastapi import APIRouter

DefaultRouter = APIRouter()


@DefaultRouter.get("/")
async def landing():
    return {"service": "treksistem-order-engine", "docs": "/docs"}
