"""Uniform JSON envelope for API responses."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status_code: int = status.HTTP_200_OK
    data: T
    message: str = "Success"
    success: bool = True


class EmptyData(BaseModel):
    pass


def error_response(
    status_code: int,
    message: str,
    *,
    errors: list[Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": None,
            "message": message,
            "success": False,
            "errors": errors or [],
        },
    )
