"""
Majority-Vote Deduplication

Resolves reference records whose nominal key repeats with conflicting
attributes. For each key the attribute tuple seen most often wins; ties are
settled by a configurable deterministic rule:

- lexicographic: the tied tuple that sorts first (attributes in declared
  order, nulls last)
- first_seen: the tied tuple whose first occurrence comes earliest in the input
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import polars as pl
import structlog

from superstore.config import TieBreak, get_settings

logger = structlog.get_logger(__name__)

PRODUCT_KEY = "product_id"
PRODUCT_ATTRIBUTES = ["product_name", "category", "sub_category"]


@dataclass
class DedupStats:
    """Statistics from a deduplication pass"""
    raw_rows: int
    distinct_keys: int
    conflicting_keys: int
    rows_removed: int
    null_keys_dropped: int = 0


class MajorityVoteDeduplicator:
    """
    Reduce-by-key with frequency ranking.

    Example:
        dedup = MajorityVoteDeduplicator("product_id", ["product_name", "category", "sub_category"])
        canonical, stats = dedup.deduplicate(raw_products)
    """

    def __init__(
        self,
        key: str,
        attributes: Sequence[str],
        tie_break: Optional[TieBreak] = None,
    ):
        if key in attributes:
            raise ValueError(f"Key column '{key}' cannot also be an attribute")
        self.key = key
        self.attributes: List[str] = list(attributes)
        self.tie_break = TieBreak(tie_break or get_settings().analytics.tie_break)

    def _count_variants(self, df: pl.DataFrame) -> pl.DataFrame:
        """One row per (key, attribute tuple) with its frequency and first position"""
        return (
            df.select([self.key, *self.attributes])
            .with_row_index("_position")
            .group_by([self.key, *self.attributes])
            .agg([
                pl.len().alias("_frequency"),
                pl.col("_position").min().alias("_first_seen"),
            ])
        )

    def _rank_variants(self, variants: pl.DataFrame) -> pl.DataFrame:
        """Order variants so the winner of each key comes first"""
        if self.tie_break == TieBreak.FIRST_SEEN:
            by = [self.key, "_frequency", "_first_seen"]
            descending = [False, True, False]
        else:
            by = [self.key, "_frequency", *self.attributes]
            descending = [False, True] + [False] * len(self.attributes)
        return variants.sort(by=by, descending=descending, nulls_last=True)

    def deduplicate(self, df: pl.DataFrame) -> Tuple[pl.DataFrame, DedupStats]:
        """
        Produce exactly one canonical record per distinct key.

        Args:
            df: Raw records; must contain the key and every attribute column

        Returns:
            (canonical DataFrame sorted by key, DedupStats)
        """
        missing = [c for c in [self.key, *self.attributes] if c not in df.columns]
        if missing:
            raise ValueError(f"Missing columns for deduplication: {missing}")

        raw_rows = len(df)
        keyed = df.filter(pl.col(self.key).is_not_null())
        null_keys = raw_rows - len(keyed)
        if null_keys:
            logger.warning("Dropped records without a key", key=self.key, count=null_keys)

        variants = self._count_variants(keyed)

        conflicts = (
            variants.group_by(self.key)
            .agg(pl.len().alias("_variants"))
            .filter(pl.col("_variants") > 1)
            .sort(self.key)
        )
        for key_value, n_variants in conflicts.iter_rows():
            logger.debug("Conflicting variants resolved by majority vote", key=key_value, variants=n_variants)

        canonical = (
            self._rank_variants(variants)
            .unique(subset=[self.key], keep="first", maintain_order=True)
            .select([self.key, *self.attributes])
        )

        stats = DedupStats(
            raw_rows=raw_rows,
            distinct_keys=len(canonical),
            conflicting_keys=len(conflicts),
            rows_removed=len(keyed) - len(canonical),
            null_keys_dropped=null_keys,
        )

        logger.info(
            "Deduplication complete",
            key=self.key,
            raw_rows=stats.raw_rows,
            distinct_keys=stats.distinct_keys,
            conflicting_keys=stats.conflicting_keys,
            tie_break=self.tie_break.value,
        )

        return canonical, stats


def deduplicate_products(
    raw_products: pl.DataFrame,
    tie_break: Optional[TieBreak] = None,
) -> Tuple[pl.DataFrame, DedupStats]:
    """
    Build the canonical product table from raw product records.

    Args:
        raw_products: Cleaned raw products (product_id may repeat)
        tie_break: Override the configured tie-break rule

    Returns:
        (canonical products, DedupStats)
    """
    dedup = MajorityVoteDeduplicator(PRODUCT_KEY, PRODUCT_ATTRIBUTES, tie_break=tie_break)
    return dedup.deduplicate(raw_products)
