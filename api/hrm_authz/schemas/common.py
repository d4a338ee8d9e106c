"""Standard response envelope shared by every endpoint."""
from typing import Any, Generic, Optional, TypeVar

from fastapi import status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ResponseHeader(BaseModel):
    """Serialized as ``responseCode``, ``responseMessage``, ``responseDetail``."""
    response_code: int
    response_message: str
    response_detail: str = ""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(BaseModel, Generic[T]):
    header: ResponseHeader
    response: Optional[T] = None


def _header(response_code: int, message: str, detail: str) -> dict:
    return ResponseHeader(
        response_code=response_code,
        response_message=message,
        response_detail=detail,
    ).model_dump(by_alias=True)


def success(
    data: Any = None,
    message: str = "Success",
    detail: str = "",
    response_code: int = status.HTTP_200_OK,
) -> dict:
    return {"header": _header(response_code, message, detail), "response": data}


def error(message: str, detail: str = "", response_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> dict:
    return {"header": _header(response_code, message, detail), "response": None}
