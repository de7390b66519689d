"""JSON request bodies validated inside the handler.

A pydantic body parameter makes FastAPI decode and validate the payload
before route dependencies run, which would answer 400 ahead of rate limiting,
authentication and permission checks. Guarded routes take the raw ``Request``
instead and call ``parse_json_body`` once the admission dependencies passed.
"""

from __future__ import annotations

from typing import Any, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


async def parse_json_body(request: Request, model: type[ModelT]) -> ModelT:
    """Validate the raw request body against model.

    Raises:
        RequestValidationError: Malformed JSON or invalid fields; handled as
            400 "Invalid input data" like any other request validation error.
    """
    raw = await request.body()
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        errors = [
            {**error, "loc": ("body", *error["loc"])}
            for error in exc.errors(include_url=False)
        ]
        raise RequestValidationError(errors) from exc


def json_body_openapi(model: type[BaseModel]) -> dict[str, Any]:
    """``openapi_extra`` documenting a body that is parsed by hand."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }
