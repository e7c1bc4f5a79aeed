import contextvars

_tenant_id: contextvars.ContextVar[str] = contextvars.ContextVar("tenant_id", default="-")
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_actor: contextvars.ContextVar[str] = contextvars.ContextVar("actor", default="-")


def set_tenant_id(tenant_id: str) -> None:
    _tenant_id.set(tenant_id)


def get_tenant_id() -> str:
    return _tenant_id.get()


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_actor(user_id: str, role: str) -> None:
    """Remember who is acting so log lines can be traced to a principal."""
    _actor.set(f"{role}:{user_id}")


def get_actor() -> str:
    return _actor.get()


def clear_context() -> None:
    _tenant_id.set("-")
    _request_id.set("-")
    _actor.set("-")
