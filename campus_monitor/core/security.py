from typing import Optional

from .config import settings


def check_faculty_code(code: Optional[str], expected: Optional[str] = None) -> bool:
    """Compare an entered code against the configured faculty access code.

    This only gates the scheduling panel of a detail view. It is a shared
    literal compared in the clear: no hashing, no rate limiting and no
    server-side session. The REST write endpoints are not behind it, so it
    provides no access control and must not be treated as one.
    """
    if code is None:
        return False
    return code == (settings.faculty_access_code if expected is None else expected)
