"""Response envelope shared by every router: {success, message, data}"""

import math
from typing import Any, Optional


def envelope(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def pagination(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "limit": limit,
    }
