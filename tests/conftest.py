"""Root pytest configuration for all tests.

This conftest applies to all test types (unit, integration) and provides
the sample page trees and gateways most tests start from.
"""

import logging

import pytest

from src.node_store.node_store import NodeStore
from src.persistence.file_store import FileGateway
from src.persistence.memory_store import InMemoryGateway
from src.prop_classifier.prop_classifier import PropClassifier
from tests.fixtures.page_trees import sample_page_fi_wire, sample_page_wire, tree

# Keep engine debug output out of failure reports unless asked for
logging.getLogger("src").setLevel(logging.INFO)


@pytest.fixture
def node_store():
    return NodeStore()


@pytest.fixture
def classifier():
    return PropClassifier()


@pytest.fixture
def en_wire():
    return sample_page_wire()


@pytest.fixture
def fi_wire():
    return sample_page_fi_wire()


@pytest.fixture
def en_tree(en_wire):
    return tree(en_wire)


@pytest.fixture
def fi_tree(fi_wire):
    return tree(fi_wire)


@pytest.fixture
def memory_gateway():
    return InMemoryGateway()


@pytest.fixture
def file_gateway(tmp_path):
    return FileGateway(tmp_path / "data", lock_timeout=1.0)


@pytest.fixture(params=["memory", "file"])
def gateway(request, tmp_path):
    """Both gateway implementations, for behavior they must share."""
    if request.param == "memory":
        return InMemoryGateway()
    return FileGateway(tmp_path / "data", lock_timeout=1.0)
