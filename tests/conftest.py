import pytest

from stubs import NOW, StubCredentialSigner


@pytest.fixture
def credential_signer():
    return StubCredentialSigner()


@pytest.fixture
def clock():
    return lambda: NOW
