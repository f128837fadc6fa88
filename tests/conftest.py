"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from depsync.adapters.mock import MockBuilder, MockManifestSource, MockUpdater
from depsync.core.engine.coordinator import UpdateCoordinator


@pytest.fixture
def manifest_source() -> MockManifestSource:
    """A manifest declaring alpha and beta."""
    return MockManifestSource(names=["alpha", "beta"])


@pytest.fixture
def updater() -> MockUpdater:
    return MockUpdater()


@pytest.fixture
def builder() -> MockBuilder:
    return MockBuilder()


@pytest.fixture
def coordinator(
    manifest_source: MockManifestSource,
    updater: MockUpdater,
    builder: MockBuilder,
) -> UpdateCoordinator:
    return UpdateCoordinator(manifest_source, updater, builder)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project with depsync.yml and a Depfile declaring two dependencies."""
    (tmp_path / "depsync.yml").write_text("name: sample-app\n")
    (tmp_path / "Depfile").write_text(textwrap.dedent("""\
        dependencies:
          - name: Alamofire
            location: Alamofire/Alamofire
            constraint: "~> 5.0"
          - ReactiveX/RxSwift
    """))
    return tmp_path
