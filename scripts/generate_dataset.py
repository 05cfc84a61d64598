"""
Superstore Sample Dataset Generator

Writes orders.csv, customers.csv and products.csv into the raw zone
(or the directory given with --output-dir).
"""

import argparse

from superstore.config.logging import configure_logging
from superstore.data.generators import SuperstoreGenerator


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic Superstore dataset")
    parser.add_argument("--output-dir", default=None, help="Target directory (default: DATA_RAW_PATH)")
    parser.add_argument("--customers", type=int, default=800)
    parser.add_argument("--products", type=int, default=1800)
    parser.add_argument("--orders", type=int, default=5000)
    parser.add_argument("--conflict-rate", type=float, default=0.1,
                        help="Share of product ids given a conflicting name")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    configure_logging(log_format="text")

    generator = SuperstoreGenerator(seed=args.seed)
    data = generator.generate_all(
        n_customers=args.customers,
        n_products=args.products,
        n_orders=args.orders,
        conflict_rate=args.conflict_rate,
    )
    paths = generator.save(data, args.output_dir)

    print("=" * 60)
    for name, path in paths.items():
        print(f"  {name}: {len(data[name]):,} rows -> {path}")
    print("=" * 60)


if __name__ == "__main__":
    main()
