from fastapi import Header, HTTPException, Request

from .container import Container


def get_container(request: Request) -> Container:
    return request.app.state.container


def current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> int:
    """Caller identity, supplied by the trusted gateway in front of the API."""
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-User-Id must be an integer")
