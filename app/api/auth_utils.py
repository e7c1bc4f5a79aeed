from functools import lru_cache
from typing import Optional

from app.core.security import pwd_context, verify_password


@lru_cache
def _dummy_hash() -> str:
    return pwd_context.hash("unknown-account-placeholder")


def constant_time_verify(user_password_hash: Optional[str], password: str) -> bool:
    if user_password_hash:
        return verify_password(password, user_password_hash)
    # Dummy verification to equalize timing
    verify_password(password, _dummy_hash())
    return False
