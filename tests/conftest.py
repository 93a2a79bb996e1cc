import pytest
from PyQt6.QtCore import QCoreApplication


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
