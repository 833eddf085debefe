import http

from utils.result import EngineError


class TrustMechanismError(EngineError):
    def __init__(self, message: str, code: str, details: dict = None):
        super().__init__(message, code, details, status_code=http.HTTPStatus.BAD_REQUEST)
