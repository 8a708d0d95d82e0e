"""Shared fixtures for Penrove tests."""

import pytest

from penrove.config import EditorConfig, LayoutSettings
from penrove.controller import EditorController
from penrove.mutations import MutationService


@pytest.fixture
def settings():
    return LayoutSettings()


@pytest.fixture
def service(settings):
    return MutationService(settings)


@pytest.fixture
def controller():
    return EditorController(EditorConfig())


@pytest.fixture
def chain(controller):
    """Controller holding the chain 1 -> 2 -> 3."""
    controller.add_child(1)
    controller.add_child(2)
    return controller
