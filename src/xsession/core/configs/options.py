"""
Turning pydantic validation failures into ConfigError.

Validators raise ``OptionError`` (a ValueError, so pydantic collects it)
carrying the client error code. ``parse_config`` unwraps the first failure
into a ``ConfigError`` with that code and message, so callers never see a
pydantic ValidationError.
"""
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

from xsession.utility.errors import (
    ER_DEVAPI_BAD_CLIENT_OPTION,
    ER_DEVAPI_BAD_CLIENT_OPTION_VALUE,
    message_for,
)
from xsession.utility.exceptions import ConfigError

ModelT = TypeVar("ModelT", bound=BaseModel)


class OptionError(ValueError):
    """Validator failure that knows its client error code."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _option_path(loc) -> str:
    return ".".join(str(part) for part in loc if not isinstance(part, int))


def to_config_error(error: ValidationError) -> ConfigError:
    """Convert the first error of a ValidationError into a ConfigError."""
    first = error.errors()[0]
    cause = first.get("ctx", {}).get("error")
    if isinstance(cause, OptionError):
        return ConfigError(cause.message, cause.code)

    option = _option_path(first.get("loc", ()))
    if first.get("type") == "extra_forbidden":
        return ConfigError(
            message_for(ER_DEVAPI_BAD_CLIENT_OPTION, option),
            ER_DEVAPI_BAD_CLIENT_OPTION,
        )
    if first.get("type") == "value_error":
        return ConfigError(str(cause), ER_DEVAPI_BAD_CLIENT_OPTION_VALUE)
    return ConfigError(
        message_for(ER_DEVAPI_BAD_CLIENT_OPTION_VALUE, option, first.get("input")),
        ER_DEVAPI_BAD_CLIENT_OPTION_VALUE,
    )


def parse_config(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """
    Validate ``data`` against ``model``.

    Raises:
        ConfigError: With the client error code of the first invalid option
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise to_config_error(e) from e
