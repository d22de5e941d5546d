"""Concurrency tests for permission toggles.

Two administrators toggle different keys on the same role at the same time.
Both read the role before either writes. The plain toggle loses one update;
the checked toggle refuses the second write instead.
"""

import asyncio

import pytest
import pytest_asyncio

from rolekeeper.domain.exceptions import ConcurrentModificationError
from rolekeeper.domain.services import RoleAdministrationService
from rolekeeper.infrastructure.persistence.repositories import RoleRepository


class InterleavingRoleRepository(RoleRepository):
    """Repository that holds every reader until ``readers`` reads completed.

    Store calls are serialized with a lock because the in-memory test
    database shares one connection between sessions.
    """

    def __init__(self, session_factory, readers: int = 2):
        super().__init__(session_factory)
        self._io_lock = asyncio.Lock()
        self._readers = readers
        self._reads = 0
        self._all_read = asyncio.Event()

    async def fetch(self, role_id):
        async with self._io_lock:
            role = await super().fetch(role_id)
        self._reads += 1
        if self._reads >= self._readers:
            self._all_read.set()
        await self._all_read.wait()
        return role

    async def put(self, role):
        async with self._io_lock:
            return await super().put(role)

    async def compare_and_put(self, role, expected_revision):
        async with self._io_lock:
            return await super().compare_and_put(role, expected_revision)


@pytest_asyncio.fixture
async def interleaving_repository(session_factory, role_factory):
    repository = InterleavingRoleRepository(session_factory)
    # Seeding goes through the unwrapped put
    await RoleRepository.put(repository, role_factory("cashier", 50, {"transactions.create": True}))
    return repository


@pytest.mark.asyncio
async def test_concurrent_toggles_lose_an_update(interleaving_repository):
    """Interleaved read-modify-write toggles keep only the last writer's map."""
    service = RoleAdministrationService(interleaving_repository)

    await asyncio.gather(
        service.set_permission("cashier", "inventory.add", True),
        service.set_permission("cashier", "inventory.edit", True),
    )

    stored = await RoleRepository.fetch(interleaving_repository, "cashier")
    granted = {key for key, value in stored.permissions.items() if value is True}

    assert "transactions.create" in granted
    # Exactly one of the two toggles survived
    assert len(granted & {"inventory.add", "inventory.edit"}) == 1
    assert stored.revision == 3


@pytest.mark.asyncio
async def test_concurrent_checked_toggles_reject_the_loser(interleaving_repository):
    """The checked toggle turns the lost update into an explicit conflict."""
    service = RoleAdministrationService(interleaving_repository)

    results = await asyncio.gather(
        service.set_permission_checked("cashier", "inventory.add", True),
        service.set_permission_checked("cashier", "inventory.edit", True),
        return_exceptions=True,
    )

    errors = [result for result in results if isinstance(result, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], ConcurrentModificationError)

    stored = await RoleRepository.fetch(interleaving_repository, "cashier")
    granted = {key for key, value in stored.permissions.items() if value is True}
    assert len(granted & {"inventory.add", "inventory.edit"}) == 1
    assert stored.revision == 2
