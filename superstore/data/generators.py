"""
Synthetic Data Generator

Generates Superstore-shaped source files for testing and development.
Includes:
- Customers spread over the three segments and four regions
- Raw products where some ids carry conflicting names
- Transactions with multi-line orders, repeat buyers and single buyers
"""

from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import polars as pl
import structlog
from faker import Faker

from superstore.config import get_settings

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = [
    ("Furniture", "FUR", ["Bookcases", "Chairs", "Furnishings", "Tables"]),
    ("Office Supplies", "OFF", ["Appliances", "Art", "Binders", "Envelopes", "Fasteners",
                                "Labels", "Paper", "Storage", "Supplies"]),
    ("Technology", "TEC", ["Accessories", "Copiers", "Machines", "Phones"]),
]

SEGMENTS = [("Consumer", 0.52), ("Corporate", 0.30), ("Home Office", 0.18)]

REGIONS = {
    "East": ["New York", "Pennsylvania", "Ohio", "Massachusetts"],
    "West": ["California", "Washington", "Oregon", "Arizona"],
    "Central": ["Texas", "Illinois", "Michigan", "Indiana"],
    "South": ["Florida", "Georgia", "Virginia", "Tennessee"],
}

SHIP_MODES = [("Standard Class", 0.60, (4, 7)), ("Second Class", 0.20, (2, 5)),
              ("First Class", 0.15, (1, 3)), ("Same Day", 0.05, (0, 0))]

DATE_FORMAT = "%m/%d/%Y"


# =============================================================================
# GENERATOR
# =============================================================================

class SuperstoreGenerator:
    """
    Generate the three Superstore source tables.

    Output columns use the source headers ("Order ID", "Sub-Category", ...)
    and dates are written as mm/dd/yyyy, so the files exercise the same
    normalization as real extracts.

    Example:
        generator = SuperstoreGenerator(seed=7)
        data = generator.generate_all(n_customers=50, n_products=40, n_orders=300)
    """

    def __init__(self, seed: int = 42):
        self.fake = Faker("en_US")
        self.fake.seed_instance(seed)
        self.rng = np.random.default_rng(seed)

    def _choice(self, weighted: List[tuple]) -> tuple:
        weights = np.array([w[1] for w in weighted])
        return weighted[self.rng.choice(len(weighted), p=weights / weights.sum())]

    def generate_customers(self, n: int = 200) -> pl.DataFrame:
        """Generate n customers with unique ids"""
        rows = []
        seen = set()
        while len(rows) < n:
            name = self.fake.name()
            initials = "".join(part[0] for part in name.split()[:2]).upper()
            customer_id = f"{initials}-{self.rng.integers(10000, 99999)}"
            if customer_id in seen:
                continue
            seen.add(customer_id)

            region = list(REGIONS)[self.rng.integers(len(REGIONS))]
            states = REGIONS[region]
            rows.append({
                "Customer ID": customer_id,
                "Customer Name": name,
                "Segment": self._choice(SEGMENTS)[0],
                "Country": "United States",
                "City": self.fake.city(),
                "State": states[self.rng.integers(len(states))],
                "Postal Code": self.fake.postcode(),
                "Region": region,
            })
        return pl.DataFrame(rows)

    def generate_products(self, n: int = 150, conflict_rate: float = 0.1) -> pl.DataFrame:
        """
        Generate raw product rows for n product ids.

        Every id appears one to three times; a share of ids given by
        conflict_rate gets an extra row with a different name for the
        deduplicator to vote out.
        """
        rows = []
        for i in range(n):
            category, prefix, sub_categories = CATEGORIES[self.rng.integers(len(CATEGORIES))]
            sub_category = sub_categories[self.rng.integers(len(sub_categories))]
            product_id = f"{prefix}-{sub_category[:2].upper()}-{10000000 + i:08d}"
            name = f"{self.fake.company()} {self.fake.word().title()} {sub_category}"

            for _ in range(int(self.rng.integers(1, 4))):
                rows.append({
                    "Product ID": product_id,
                    "Product Name": name,
                    "Category": category,
                    "Sub-Category": sub_category,
                })
            if self.rng.random() < conflict_rate:
                rows.append({
                    "Product ID": product_id,
                    "Product Name": f"{name}, {self.fake.color_name()}",
                    "Category": category,
                    "Sub-Category": sub_category,
                })

        return pl.DataFrame(rows)

    def generate_orders(
        self,
        customer_ids: List[str],
        product_ids: List[str],
        n: int = 2000,
        start_date: Optional[date] = None,
        days: int = 4 * 365,
    ) -> pl.DataFrame:
        """Generate n orders, each with one to five lines"""
        start_date = start_date or date(2014, 1, 1)
        rows = []
        row_id = 1

        for i in range(n):
            order_date = start_date + timedelta(days=int(self.rng.integers(days)))
            ship_mode, _, (low, high) = self._choice(SHIP_MODES)
            ship_date = order_date + timedelta(days=int(self.rng.integers(low, high + 1)))
            order_id = f"CA-{order_date.year}-{100000 + i}"
            customer_id = customer_ids[self.rng.integers(len(customer_ids))]

            n_lines = int(self.rng.choice([1, 2, 3, 4, 5], p=[0.45, 0.25, 0.15, 0.10, 0.05]))
            for product_index in self.rng.choice(len(product_ids), size=n_lines, replace=False):
                quantity = int(self.rng.integers(1, 10))
                discount = float(self.rng.choice([0.0, 0.0, 0.1, 0.2, 0.3]))
                sales = round(float(self.rng.uniform(2, 900)) * quantity * (1 - discount), 2)
                profit = round(sales * float(self.rng.uniform(-0.4, 0.5)), 2)
                rows.append({
                    "Row ID": row_id,
                    "Order ID": order_id,
                    "Order Date": order_date.strftime(DATE_FORMAT),
                    "Ship Date": ship_date.strftime(DATE_FORMAT),
                    "Ship Mode": ship_mode,
                    "Customer ID": customer_id,
                    "Product ID": product_ids[product_index],
                    "Sales": sales,
                    "Quantity": quantity,
                    "Discount": discount,
                    "Profit": profit,
                })
                row_id += 1

        return pl.DataFrame(rows)

    def generate_all(
        self,
        n_customers: int = 200,
        n_products: int = 150,
        n_orders: int = 2000,
        conflict_rate: float = 0.1,
    ) -> Dict[str, pl.DataFrame]:
        """Generate a complete, referentially consistent dataset"""
        customers = self.generate_customers(n_customers)
        products = self.generate_products(n_products, conflict_rate=conflict_rate)
        orders = self.generate_orders(
            customers["Customer ID"].to_list(),
            products["Product ID"].unique(maintain_order=True).to_list(),
            n=n_orders,
        )
        logger.info(
            "Generated synthetic dataset",
            customers=len(customers),
            product_rows=len(products),
            order_lines=len(orders),
        )
        return {"orders": orders, "customers": customers, "products": products}

    def save(
        self,
        data: Dict[str, pl.DataFrame],
        output_dir: Optional[Union[str, Path]] = None,
    ) -> Dict[str, Path]:
        """Write each table as CSV into the raw zone"""
        settings = get_settings()
        output_dir = Path(output_dir or settings.data_lake.raw_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        file_names = {
            "orders": settings.data_lake.orders_file,
            "customers": settings.data_lake.customers_file,
            "products": settings.data_lake.products_file,
        }
        paths = {}
        for name, df in data.items():
            path = output_dir / file_names[name]
            df.write_csv(path)
            paths[name] = path
            logger.info("Saved dataset", dataset=name, rows=len(df), file=str(path))
        return paths
