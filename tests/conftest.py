from collections.abc import Generator

import pytest

from procspec.config import reset
from procspec.descriptors import clear_descriptor_cache


@pytest.fixture(autouse=True)
def _reset_procspec_config() -> Generator[None, None, None]:
    reset()
    yield
    reset()
    clear_descriptor_cache()
