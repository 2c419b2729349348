from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from elastic_frame import ElasticResource


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    target_dir = (Path(config.rootpath) / "tests" / marker).resolve()

    for item in items:
        path = Path(str(item.fspath)).resolve()
        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    for marker in ("unit", "integration", "end2end"):
        _mark_tests_by_directory(config, items, marker)


@pytest.fixture
def iris_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Sepal.Length": [5.1, 4.9, 4.7],
            "Sepal.Width": [3.5, 3.0, 3.2],
            "Species": ["setosa", "setosa", "versicolor"],
        },
    )


@pytest.fixture
def iris_resource() -> ElasticResource:
    return ElasticResource(cluster_url="http://localhost:9200", index="iris", doc_type="data")


@pytest.fixture
def iris_index() -> ElasticResource:
    return ElasticResource(cluster_url="http://localhost:9200", index="iris")
