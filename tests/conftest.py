"""pytest configuration and fixtures for pyqt-controlgen tests."""

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from pyqt_controlgen.controls.session import ControlSession, reset_session, set_session
from pyqt_controlgen.protocols.control_config import set_control_config
from pyqt_controlgen.render.memory_target import MemoryRenderTarget
from pyqt_controlgen.services.template_engine import TemplateEngine


@pytest.fixture(scope="session")
def qapp():
    """Create QApplication instance for tests."""
    app = QApplication.instance() or QApplication([])
    yield app
    # Don't quit - may cause issues with other tests


@pytest.fixture
def session():
    """Fresh in-memory session installed as the default one."""
    session = ControlSession(
        target=MemoryRenderTarget(),
        templates=TemplateEngine({"UserName": "Ann", "Total": 25.99}),
    )
    set_session(session)
    yield session
    session.destroy_all()
    reset_session()


@pytest.fixture(autouse=True)
def _restore_config():
    yield
    set_control_config(None)
