"""FastAPI dependencies for the v1 endpoints."""

from typing import get_type_hints

from fastapi import Depends

from meterly.core import container as container_mod
from meterly.core.container import Container


def get_container() -> Container:
    """Return the process container built in the app lifespan.

    Tests replace this dependency with ``app.dependency_overrides``.
    """
    if container_mod.container is None:
        raise RuntimeError("Container not initialized; initialize_container() runs at startup")
    return container_mod.container


# ---------------------------------------------------------------------------
# Injection by type
# ---------------------------------------------------------------------------

# Container field type -> field name, filled on first lookup.
_FIELD_BY_TYPE: dict[type, str] = {}


def _resolve_field_name(wanted: type) -> str:
    """Name of the single Container field annotated with ``wanted``."""
    if not _FIELD_BY_TYPE:
        _FIELD_BY_TYPE.update({hint: name for name, hint in get_type_hints(Container).items()})

    try:
        return _FIELD_BY_TYPE[wanted]
    except KeyError:
        raise TypeError(
            f"No binding for {wanted.__name__} in Container. "
            f"Available fields: {sorted(_FIELD_BY_TYPE.values())}"
        ) from None


def Inject(wanted: type):  # noqa: N802, uppercase to read like Depends()
    """Depend on the Container field of type ``wanted``.

    Endpoints name the service they need, not where it lives::

        @router.get("/{tenant_id}")
        async def read(tenant_id: str, tenants: TenantService = Inject(TenantService)):
            return await tenants.get(tenant_id)

    An unknown type fails at import time, when the route is declared.
    """
    field_name = _resolve_field_name(wanted)

    def _dependency(c: Container = Depends(get_container)):
        return getattr(c, field_name)

    return Depends(_dependency)
