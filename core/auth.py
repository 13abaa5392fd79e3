from typing import Optional

from fastapi import Header, HTTPException, status

# Authentication happens in front of this service; the gateway forwards the
# resolved user id in this header.
USER_HEADER = "X-User-Id"


def _clean(user_id: Optional[str]) -> Optional[str]:
    if user_id is None:
        return None
    user_id = user_id.strip()
    return user_id or None


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    user_id = _clean(x_user_id)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user_id


def get_optional_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return _clean(x_user_id)
