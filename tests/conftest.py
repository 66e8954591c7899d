import pytest

from svcreg.runtime.container import ServiceContainer


@pytest.fixture
def root():
    container = ServiceContainer(name="root")
    yield container
    container.dispose()


@pytest.fixture
def child(root):
    container = ServiceContainer(root, name="child")
    yield container
    container.dispose()
