"""
Engine results and errors

Every business-rule violation in the pricing, trust and order state machine
code is an EngineError subclass with a stable string code and a details dict.
Public engine operations never let these escape: they return either
Success(value) or Failure(error), so callers have to branch on the outcome.

Usage:
    result = compute_cost(config, details)
    if not result.is_success:
        return error_response(result.error)
    breakdown = result.value
"""

import http
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, ClassVar, Dict, Generic, Optional, Tuple, Type, TypeVar, Union

T = TypeVar("T")


class EngineError(Exception):
    """Base class for all domain errors raised by the engine"""

    status_code: ClassVar[int] = http.HTTPStatus.BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    @property
    def category(self) -> str:
        return http.HTTPStatus(self.status_code).name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses and logs"""
        return {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self):
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    is_success: ClassVar[bool] = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: EngineError

    is_success: ClassVar[bool] = False

    @property
    def code(self) -> str:
        return self.error.code

    def unwrap(self):
        raise self.error


Result = Union[Success[T], Failure]


def returns_result(*error_types: Type[EngineError]) -> Callable:
    """
    Wrap a raising function so that the listed engine errors come back as Failure.

    Errors outside the list still propagate: they are programming errors, not
    documented business outcomes.
    """
    catch: Tuple[Type[EngineError], ...] = error_types or (EngineError,)

    def decorator(func: Callable[..., T]) -> Callable[..., Result]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Result:
            try:
                return Success(func(*args, **kwargs))
            except catch as e:
                return Failure(e)

        return wrapper

    return decorator
