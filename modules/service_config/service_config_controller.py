import http
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from context_manager.context import build_request_context, set_actor
from logger import logger

# schema
from schema.base import GenericResponseModel

# utils
from utils.response_handler import build_api_response, build_error_response

from .service_config_validator import validate_service_config


service_config_router = APIRouter(
    prefix="/mitra/{mitra_id}/services", tags=["service-config"]
)


# check a service configuration before it is saved
@service_config_router.post(
    "/validate-config",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def validate_config(
    mitra_id: str,
    config: Dict[str, Any] = Body(...),
    _=Depends(build_request_context),
):
    try:
        set_actor("MITRA_ADMIN", mitra_id)
        result = validate_service_config(config)
        if not result.is_success:
            return build_api_response(build_error_response(result.error))

        return build_api_response(
            GenericResponseModel(
                status_code=http.HTTPStatus.OK,
                status=True,
                message="Service configuration is valid",
                data=result.value.model_dump(mode="json"),
            )
        )

    except Exception as e:
        logger.error(msg=f"Unhandled error validating service config: {e}")
        return build_api_response(
            GenericResponseModel(
                status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
                data=str(e),
                message="An error occurred while validating the configuration.",
            )
        )
