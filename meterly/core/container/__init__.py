"""Dependency injection for Meterly.

``create_container(settings)`` builds every adapter, repository and pipeline
stage once and subscribes the stages to the event bus. Entrypoints hold the
result in the module-level ``container``:

    from meterly.core.container import initialize_container
    from meterly.core.config import settings

    initialize_container(settings)           # main.py lifespan, worker.py main()

    from meterly.core import container as container_mod
    await container_mod.container.billing_scheduler.run()

Tests skip the global and build ``Container(...)`` from fakes (see the
``test_container`` fixture in the root conftest).

Layout:
    container.py   Container dataclass, holds implementations
    factory.py     create_container() and subscribe_all(), choose and wire them
"""

from typing import TYPE_CHECKING

from meterly.core.container.container import Container
from meterly.core.container.factory import create_container, subscribe_all

if TYPE_CHECKING:
    from meterly.core.config import Settings

__all__ = [
    "Container",
    "container",
    "create_container",
    "initialize_container",
    "reset_container",
    "subscribe_all",
]


container: Container | None = None
"""The process container, set by ``initialize_container()``.

Read by api/deps.py and worker.py only. Domain code gets its collaborators
through constructor arguments.
"""


def initialize_container(settings: "Settings") -> Container:
    """Build the process container from ``settings``.

    Raises:
        RuntimeError: If the container was already initialized.
    """
    global container

    if container is not None:
        raise RuntimeError("Container already initialized; call reset_container() first")

    container = create_container(settings)
    return container


def reset_container() -> None:
    """Drop the process container (app shutdown, tests)."""
    global container
    container = None
