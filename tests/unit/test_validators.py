"""
Unit Tests - Data Quality
"""
import warnings

import polars as pl
import pytest

from superstore.quality.validators import (
    ERROR_COLUMN,
    DataValidator,
    ValidationSeverity,
    ValidationStatus,
    create_customers_validator,
    create_order_references_validator,
    create_orders_validator,
)


class TestDataValidator:
    """Tests for DataValidator"""

    def test_not_null_check_passes(self):
        """Test not null check with valid data"""
        df = pl.DataFrame({"id": [1, 2, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.PASSED
        assert result.passed_checks == 1

    def test_not_null_check_fails(self):
        """Test not null check with null values"""
        df = pl.DataFrame({"id": [1, None, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.failed_checks == 1
        assert result.checks[0].failed_rows == 1

    def test_composite_unique_check(self):
        """Test every copy of a repeated composite key fails"""
        df = pl.DataFrame({"order_id": ["A", "A", "A"], "line_id": [1, 2, 1]})

        validator = DataValidator().add_unique_check(["order_id", "line_id"])
        valid, rejected = validator.split(df)

        assert valid["line_id"].to_list() == [2]
        assert len(rejected) == 2
        assert rejected[ERROR_COLUMN].to_list() == ["duplicate order_id, line_id"] * 2

    def test_range_check(self):
        """Test range check"""
        df = pl.DataFrame({"discount": [0.0, 0.5, -0.1, 1.2, None]})

        validator = DataValidator()
        validator.add_range_check("discount", min_value=0, max_value=1)

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        # Two values outside range: -0.1 and 1.2; nulls pass
        assert result.checks[0].failed_rows == 2

    def test_warning_gives_partial(self):
        """Test warnings do not fail the suite unless strict"""
        df = pl.DataFrame({"segment": ["Consumer", "Retail"]})

        lenient = DataValidator().add_enum_check("segment", ["Consumer"], severity=ValidationSeverity.WARNING)
        strict = DataValidator(strict_mode=True).add_enum_check(
            "segment", ["Consumer"], severity=ValidationSeverity.WARNING
        )

        assert lenient.validate(df).status == ValidationStatus.PARTIAL
        assert strict.validate(df).status == ValidationStatus.FAILED

    def test_split_keeps_warning_rows(self):
        """Test only error-severity rules reject rows"""
        df = pl.DataFrame({"segment": ["Consumer", "Retail"]})

        validator = DataValidator().add_enum_check("segment", ["Consumer"], severity=ValidationSeverity.WARNING)
        valid, rejected = validator.split(df)

        assert len(valid) == 2
        assert rejected.is_empty()
        assert ERROR_COLUMN in rejected.columns

    def test_split_lists_every_reason(self):
        """Test reasons of several broken rules are joined"""
        df = pl.DataFrame({"id": [None, 2], "qty": [-1, 3]})

        validator = DataValidator().add_not_null_check("id").add_positive_check("qty", allow_zero=False)
        valid, rejected = validator.split(df)

        assert valid.columns == ["id", "qty"]
        assert valid["id"].to_list() == [2]
        assert rejected[ERROR_COLUMN].to_list() == ["missing id; qty outside [0.0001, None]"]

    def test_missing_column(self):
        """Test a rule on a missing column fails validation and is skipped by split"""
        df = pl.DataFrame({"id": [1]})

        validator = DataValidator().add_not_null_check("name")

        assert validator.validate(df).status == ValidationStatus.FAILED
        valid, _ = validator.split(df)
        assert len(valid) == 1

    def test_success_rate(self):
        df = pl.DataFrame({"id": [1, None]})

        result = DataValidator().add_not_null_check("id").add_unique_check("id").validate(df)

        assert result.success_rate == 50.0


class TestPrebuiltValidators:
    """Tests for the Superstore validators"""

    def test_orders_validator_accepts_clean_rows(self, sample_orders_df):
        valid, rejected = create_orders_validator().split(sample_orders_df)

        assert len(valid) == len(sample_orders_df)
        assert rejected.is_empty()

    def test_orders_validator_rejects(self, sample_orders_df):
        bad = sample_orders_df.with_columns(
            pl.when(pl.col("line_id") == 1).then(-2).otherwise(pl.col("quantity")).alias("quantity"),
            pl.when(pl.col("line_id") == 2).then(None).otherwise(pl.col("order_date")).alias("order_date"),
        )

        valid, rejected = create_orders_validator().split(bad)

        assert len(valid) == 5
        reasons = dict(zip(rejected["line_id"].to_list(), rejected[ERROR_COLUMN].to_list()))
        assert reasons[1].startswith("quantity outside")
        assert reasons[2] == "missing order_date"

    def test_references_validator(self, orders_with_unknown_customer, sample_customers_df, sample_products_df):
        validator = create_order_references_validator(sample_customers_df, sample_products_df)

        valid, rejected = validator.split(orders_with_unknown_customer)

        assert "C9" not in valid["customer_id"].to_list()
        assert rejected[ERROR_COLUMN].to_list() == ["unknown customer_id"]

    def test_customers_validator(self, sample_customers_df):
        duplicated = pl.concat([sample_customers_df, sample_customers_df.head(1)])

        valid, rejected = create_customers_validator().split(duplicated)

        assert "C1" not in valid["customer_id"].to_list()
        assert len(rejected) == 2

    def test_references_validator_without_deprecation(self, orders_with_unknown_customer, sample_customers_df,
                                                      sample_products_df):
        """Test the membership lookup runs cleanly with warnings promoted to errors"""
        validator = create_order_references_validator(sample_customers_df, sample_products_df)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            valid, rejected = validator.split(orders_with_unknown_customer)

        assert len(valid) == 7
        assert rejected["customer_id"].to_list() == ["C9"]
