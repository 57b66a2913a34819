#!/usr/bin/env python3
"""Load the demo customers/quotes/sales/products into the configured record store.

Usage:
  python scripts/seed_sample_data.py
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.opspanel import create_app
from app.opspanel.modules.dashboard.service import seed_sample_data


def main() -> None:
    app = create_app()
    if app.config.get("STORE_BACKEND") == "memory":
        print("STORE_BACKEND=memory: nothing would persist; set a durable backend first.")
        sys.exit(1)
    with app.app_context():
        result = seed_sample_data(app.extensions["record_store"])
    print(result["message"])
    print(f"Customers: {len(result['customerIds'])}  Quotes: {len(result['quoteIds'])}")


if __name__ == "__main__":
    main()
