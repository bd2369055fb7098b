import pytest

from userdocs.adapters import MemoryAdapter
from userdocs.persistence import Session


@pytest.fixture
async def session():
    session = Session(MemoryAdapter())
    await session.connect()
    yield session
    await session.close()
