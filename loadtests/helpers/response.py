"""Reading RouteStream error responses in load test failures.

The API answers with one of three bodies:

- request schema errors (422): {"detail": [{"loc": [...], "msg": "..."}]}
- domain errors (400/404/409): {"error": {"field": ["msg", ...]}}
- store exhaustion (503): {"error": "msg"} plus a Retry-After header
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response

MAX_DETAIL = 300


def _field_messages(errors: dict) -> str:
    return " | ".join(
        f"{field}: {'; '.join(messages) if isinstance(messages, list) else messages}"
        for field, messages in errors.items()
    )


def error_detail(response: Response) -> str:
    """One line describing why the API refused a request."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:MAX_DETAIL] or "(empty response body)"

    if isinstance(body.get("detail"), list):
        detail = " | ".join(
            f"{'.'.join(str(p) for p in err.get('loc', []))}: {err.get('msg', err)}" for err in body["detail"]
        )
    elif isinstance(body.get("error"), dict):
        detail = _field_messages(body["error"])
    elif "error" in body:
        detail = str(body["error"])
    else:
        detail = str(body)

    if is_store_busy(response):
        detail = f"{detail} (retry after {response.headers.get('Retry-After', '?')}s)"
    return detail[:MAX_DETAIL]


def failure_message(action: str, response: Response) -> str:
    return f"{action} failed: {response.status_code}: {error_detail(response)}"


def is_lost_race(response: Response) -> bool:
    """A 409: the stop was already resolved by a competing request."""
    return response.status_code == 409


def is_store_busy(response: Response) -> bool:
    """A 503: the write kept conflicting and the server gave up."""
    return response.status_code == 503
