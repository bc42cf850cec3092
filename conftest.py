import pytest

from aad_expression.aad.core.tape import use_tape


@pytest.fixture(autouse=True)
def tape():
    """Record every test's graph on its own tape."""
    with use_tape() as t:
        yield t
