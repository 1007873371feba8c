import pytest

from zapp_core.keys import generate_keypair


# 2048-bit generation is slow; share pairs across the session
@pytest.fixture(scope="session")
def sender():
    return generate_keypair(2048)


@pytest.fixture(scope="session")
def recipient():
    return generate_keypair(2048)


@pytest.fixture(scope="session")
def stranger():
    return generate_keypair(2048)
