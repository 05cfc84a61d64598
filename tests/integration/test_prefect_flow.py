"""
Integration Tests - Prefect Flow
"""
import pytest

prefect = pytest.importorskip("prefect")

from prefect.testing.utilities import prefect_test_harness  # noqa: E402

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module", autouse=True)
def prefect_backend():
    with prefect_test_harness():
        yield


def test_superstore_batch_etl(tmp_path, source_dir):
    from workflows.batch_etl import superstore_batch_etl

    result = superstore_batch_etl(
        source_dir=str(source_dir),
        output_dir=str(tmp_path / "curated"),
        output_format="csv",
    )

    assert result["status"] == "success"
    assert result["rows_rejected"] == 0
    assert result["tables"]["customer_classification"] == 3
    assert (tmp_path / "curated" / "customer_type_distribution.csv").exists()
