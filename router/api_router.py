from fastapi import APIRouter, Depends

from context_manager.context import build_request_context

# routers
from modules.orders.order_controller import (
    driver_orders_router,
    mitra_orders_router,
    public_orders_router,
)
from modules.service_config.service_config_controller import service_config_router


# create a common master router for all the routes in the service
CommonRouter = APIRouter(prefix="/api/v1", dependencies=[Depends(build_request_context)])


# add all the routes to the master router
CommonRouter.include_router(public_orders_router)
CommonRouter.include_router(mitra_orders_router)
CommonRouter.include_router(driver_orders_router)
CommonRouter.include_router(service_config_router)
