"""Caller identity dependency.

Authentication happens upstream; the trusted proxy forwards the user id in
the X-User-ID header.
"""

from typing import Annotated

from fastapi import Header, HTTPException

USER_ID_HEADER = "X-User-ID"


def get_current_user(
    x_user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None,
) -> str:
    """Return the caller's user id.

    Raises:
        HTTPException: 401 if the identity header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail=f"Missing {USER_ID_HEADER} header")
    return x_user_id.strip()
