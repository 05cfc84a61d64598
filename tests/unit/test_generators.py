"""
Unit Tests - Synthetic Data
"""
import polars as pl

from superstore.config import TieBreak
from superstore.data.generators import SuperstoreGenerator
from superstore.transformation.cleaners import DataCleaner
from superstore.transformation.deduplicator import deduplicate_products


class TestSuperstoreGenerator:
    """Tests for SuperstoreGenerator"""

    def test_generate_all(self):
        data = SuperstoreGenerator(seed=1).generate_all(n_customers=20, n_products=15, n_orders=60)

        assert len(data["customers"]) == 20
        assert data["customers"]["Customer ID"].is_unique().all()
        assert data["products"]["Product ID"].n_unique() == 15
        assert data["orders"]["Order ID"].n_unique() == 60
        assert data["orders"]["Row ID"].to_list() == list(range(1, len(data["orders"]) + 1))

    def test_references_resolve(self):
        data = SuperstoreGenerator(seed=2).generate_all(n_customers=10, n_products=10, n_orders=40)

        assert set(data["orders"]["Customer ID"]) <= set(data["customers"]["Customer ID"])
        assert set(data["orders"]["Product ID"]) <= set(data["products"]["Product ID"])

    def test_conflicting_product_names(self):
        """Test every id gets a second name when conflict_rate is 1"""
        raw = SuperstoreGenerator(seed=3).generate_products(n=8, conflict_rate=1.0)
        products = DataCleaner().clean_raw_products(raw)

        _, stats = deduplicate_products(products, tie_break=TieBreak.LEXICOGRAPHIC)

        assert stats.distinct_keys == 8
        assert stats.conflicting_keys == 8

    def test_seed_is_reproducible(self):
        first = SuperstoreGenerator(seed=4).generate_all(n_customers=5, n_products=6, n_orders=10)
        second = SuperstoreGenerator(seed=4).generate_all(n_customers=5, n_products=6, n_orders=10)

        assert all(first[name].equals(second[name]) for name in first)

    def test_save(self, tmp_path):
        generator = SuperstoreGenerator(seed=5)
        data = generator.generate_all(n_customers=5, n_products=6, n_orders=10)

        paths = generator.save(data, tmp_path)

        assert sorted(p.name for p in paths.values()) == ["customers.csv", "orders.csv", "products.csv"]
        assert len(pl.read_csv(paths["orders"])) == len(data["orders"])
