"""Shared helpers for museum API endpoint modules.

It is internal to pymuseum and may change at any time.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pymuseum.exceptions import MuseumRejectionError

TModel = TypeVar("TModel", bound=BaseModel)


def unwrap_data(response: Any) -> Any:
    """Strip the backend's ``{success, data, message, error}`` envelope.

    A response with ``success: false`` is a rejection even on HTTP 200.
    """
    if not isinstance(response, dict):
        return response
    if response.get("success") is False:
        message = response.get("message") or response.get("error") or "request unsuccessful"
        raise MuseumRejectionError(str(message))
    if "data" in response and ("success" in response or "message" in response):
        return response["data"]
    return response


def expect_dict(response: Any, *, endpoint: str) -> dict[str, Any]:
    data = unwrap_data(response)
    if not isinstance(data, dict):
        raise MuseumRejectionError(
            f"Unexpected response shape from {endpoint}: {type(data).__name__}",
            endpoint=endpoint,
        )
    return data


def malformed_response(endpoint: str, exc: ValidationError) -> MuseumRejectionError:
    return MuseumRejectionError(
        f"Malformed response from {endpoint}: {exc.errors(include_url=False)}",
        endpoint=endpoint,
    )


def parse_model(model: type[TModel], data: Any, *, endpoint: str) -> TModel:
    """Validate *data* as *model*; a payload that does not fit is a rejection."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise malformed_response(endpoint, exc) from exc
