import pytest

from tests_basic.utils import create_junction_contours, create_junction_image


@pytest.fixture(scope="session")
def junction_image():
    return create_junction_image()


@pytest.fixture(scope="session")
def junction_contours():
    return create_junction_contours()
