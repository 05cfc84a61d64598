"""
Data Validation Module

Rule-based load-time validation for the Superstore datasets.

Every rule is a row-level predicate, so a validator can both summarize a
DataFrame (validate) and separate the rows that break error-severity rules
from the rest (split), tagging each rejected row with the reason.

Features:
- Null checks
- Uniqueness checks on single or composite keys
- Range / boundary checks
- Allowed-value checks
- Referential integrity checks
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

ERROR_COLUMN = "_error_message"

SEGMENTS = ["Consumer", "Corporate", "Home Office"]


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Row is rejected
    WARNING = "warning"  # Logged, row is kept
    INFO = "info"  # Informational only


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100


@dataclass
class _Rule:
    name: str
    columns: List[str]
    severity: ValidationSeverity
    reason: str
    failing: Callable[[], pl.Expr]


class DataValidator:
    """
    Data validator with a chainable check suite.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("customer_id")
        validator.add_range_check("discount", min_value=0, max_value=1)
        result = validator.validate(df)
        valid, rejected = validator.split(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Fail on any warning
        self._rules: List[_Rule] = []

    def _add(
        self,
        name: str,
        columns: Sequence[str],
        severity: ValidationSeverity,
        reason: str,
        failing: Callable[[], pl.Expr],
    ) -> "DataValidator":
        self._rules.append(_Rule(name, list(columns), severity, reason, failing))
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        return self._add(
            f"not_null_{column}", [column], severity,
            f"missing {column}",
            lambda: pl.col(column).is_null(),
        )

    def add_unique_check(
        self,
        columns: Union[str, Sequence[str]],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add uniqueness check on one column or a composite key; every copy of a repeated key fails"""
        cols = [columns] if isinstance(columns, str) else list(columns)
        key = "_".join(cols)

        def failing() -> pl.Expr:
            if len(cols) == 1:
                return pl.col(cols[0]).is_duplicated()
            return pl.struct(cols).is_duplicated()

        return self._add(f"unique_{key}", cols, severity, f"duplicate {', '.join(cols)}", failing)

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def failing() -> pl.Expr:
            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)
            if not conditions:
                return pl.lit(False)

            # Combine conditions with OR
            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond
            return combined.fill_null(False)

        return self._add(
            f"range_{column}", [column], severity,
            f"{column} outside [{min_value}, {max_value}]",
            failing,
        )

    def add_positive_check(
        self,
        column: str,
        allow_zero: bool = True,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for positive values"""
        min_val = 0 if allow_zero else 0.0001
        return self.add_range_check(column, min_value=min_val, severity=severity)

    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        return self._add(
            f"enum_{column}", [column], severity,
            f"{column} not in {allowed_values}",
            lambda: ~pl.col(column).is_in(allowed_values) & pl.col(column).is_not_null(),
        )

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that every non-null value exists in the reference table"""
        reference_values = reference_df[reference_column].drop_nulls().unique().to_list()
        return self._add(
            f"ref_integrity_{column}", [column], severity,
            f"unknown {column}",
            lambda: ~pl.col(column).is_in(reference_values) & pl.col(column).is_not_null(),
        )

    def _applicable(self, df: pl.DataFrame, rule: _Rule) -> bool:
        missing = [c for c in rule.columns if c not in df.columns]
        if missing:
            logger.warning("Validation rule skipped, columns missing", rule=rule.name, missing=missing)
        return not missing

    def _evaluate(self, df: pl.DataFrame, rule: _Rule) -> ValidationCheck:
        if any(c not in df.columns for c in rule.columns):
            return ValidationCheck(
                name=rule.name,
                passed=False,
                severity=rule.severity,
                message=f"Column(s) {rule.columns} not found",
            )

        failed = df.select(rule.failing().sum()).item() or 0
        total = len(df)
        passed = failed == 0

        return ValidationCheck(
            name=rule.name,
            passed=passed,
            severity=rule.severity,
            message=f"{failed} rows failed: {rule.reason}" if not passed else "Check passed",
            details={"failed_percentage": (failed / total) * 100 if total > 0 else 0},
            failed_rows=failed,
            total_rows=total,
        )

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        logger.info(f"Running {len(self._rules)} validation checks on {len(df)} rows")

        for rule in self._rules:
            result = self._evaluate(df, rule)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )

        completed_at = datetime.utcnow()

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        validation_result = ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=completed_at,
        )

        logger.info(
            f"Validation complete: {status.value}",
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return validation_result

    def split(self, df: pl.DataFrame) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """
        Separate rows breaking error-severity rules from the rest.

        Returns:
            (valid rows, rejected rows with an _error_message column listing every broken rule)
        """
        reasons = [
            pl.when(rule.failing()).then(pl.lit(rule.reason)).otherwise(None)
            for rule in self._rules
            if rule.severity == ValidationSeverity.ERROR and self._applicable(df, rule)
        ]
        if not reasons:
            return df, df.clear().with_columns(pl.lit(None, dtype=pl.Utf8).alias(ERROR_COLUMN))

        tagged = df.with_columns(
            pl.concat_str(reasons, separator="; ", ignore_nulls=True).alias(ERROR_COLUMN)
        ).with_columns(
            pl.when(pl.col(ERROR_COLUMN) == "").then(None).otherwise(pl.col(ERROR_COLUMN)).alias(ERROR_COLUMN)
        )

        valid = tagged.filter(pl.col(ERROR_COLUMN).is_null()).drop(ERROR_COLUMN)
        rejected = tagged.filter(pl.col(ERROR_COLUMN).is_not_null())
        return valid, rejected


# Pre-built validators for the Superstore datasets
def create_orders_validator() -> DataValidator:
    """Create validator for transaction rows"""
    return (
        DataValidator()
        .add_not_null_check("order_id")
        .add_not_null_check("line_id")
        .add_not_null_check("customer_id")
        .add_not_null_check("product_id")
        .add_not_null_check("order_date")
        .add_not_null_check("quantity")
        .add_unique_check(["order_id", "line_id"])
        .add_positive_check("quantity", allow_zero=False)
        .add_range_check("discount", min_value=0, max_value=1)
        .add_positive_check("sales", severity=ValidationSeverity.WARNING)
    )


def create_order_references_validator(
    customers: pl.DataFrame,
    products: pl.DataFrame,
) -> DataValidator:
    """Create foreign-key validator for transactions against the reference tables"""
    return (
        DataValidator()
        .add_referential_integrity_check("customer_id", customers, "customer_id")
        .add_referential_integrity_check("product_id", products, "product_id")
    )


def create_customers_validator() -> DataValidator:
    """Create validator for the customer reference table"""
    return (
        DataValidator()
        .add_not_null_check("customer_id")
        .add_unique_check("customer_id")
        .add_enum_check("segment", SEGMENTS, severity=ValidationSeverity.WARNING)
        .add_not_null_check("region", severity=ValidationSeverity.WARNING)
    )


def create_raw_products_validator() -> DataValidator:
    """Create validator for raw product records (repeated ids are expected)"""
    return (
        DataValidator()
        .add_not_null_check("product_id")
        .add_not_null_check("product_name", severity=ValidationSeverity.WARNING)
        .add_not_null_check("category", severity=ValidationSeverity.WARNING)
    )


def create_products_validator() -> DataValidator:
    """Create validator for the canonical product table"""
    return (
        DataValidator()
        .add_not_null_check("product_id")
        .add_unique_check("product_id")
    )
