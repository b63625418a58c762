import pytest

from _shapes import RecordingMediator


@pytest.fixture
def mediator():
    return RecordingMediator()
