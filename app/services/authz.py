from app.core.permissions import ROLE_CAPABILITIES, Capability, UserRole


def capabilities_for_role(role: str | None) -> frozenset[str]:
    try:
        return ROLE_CAPABILITIES.get(UserRole(role), frozenset())
    except ValueError:
        return frozenset()


def has_capability(role: str | None, capability: Capability | str) -> bool:
    """Answer "may a principal with this role perform this action"."""
    target = capability.value if isinstance(capability, Capability) else str(capability)
    return target in capabilities_for_role(role)
