from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from app.opspanel.modules.customers.service import CUSTOMERS, add_customer, get_customers
from app.opspanel.modules.orders.service import ORDERS, add_order, get_orders, update_delivery_status, update_order_status
from app.opspanel.modules.products.service import add_product, get_products
from app.opspanel.modules.quotes.service import QUOTES, add_quote, get_quotes, update_quote
from app.opspanel.modules.sales.service import CLOSED_STATUSES, SALES, add_sale, get_sales, update_sale
from app.opspanel.modules.templates.service import seed_templates

if TYPE_CHECKING:
    from app.opspanel.records import Record, RecordStore

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _most_recent(records: list["Record"], limit: int = RECENT_LIMIT) -> list["Record"]:
    return sorted(records, key=lambda r: r.get("createdAt") or "", reverse=True)[:limit]


def dashboard_stats(store: "RecordStore") -> dict[str, Any]:
    quotes = get_quotes(store)
    sales = get_sales(store)
    customers = get_customers(store)
    orders = get_orders(store)

    def _count(records: list["Record"], status: str) -> int:
        return sum(1 for r in records if r.get("status") == status)

    won = [s for s in sales if s.get("status") == "won"]
    return {
        "totalQuotes": len(quotes),
        "totalSales": len(sales),
        "totalCustomers": len(customers),
        "totalOrders": len(orders),
        "pendingOrders": _count(orders, "pending"),
        "openDeliveries": sum(
            1
            for o in orders
            if o.get("status") != "cancelled" and (o.get("delivery") or {}).get("status") != "delivered"
        ),
        "pendingQuotes": _count(quotes, "sent"),
        "acceptedQuotes": _count(quotes, "accepted"),
        "declinedQuotes": _count(quotes, "declined"),
        "wonSales": len(won),
        "lostSales": _count(sales, "lost"),
        "activeSales": sum(1 for s in sales if s.get("status") not in CLOSED_STATUSES),
        "totalQuoteValue": sum(_as_float(q.get("total")) for q in quotes),
        "totalSalesValue": sum(_as_float(s.get("amount")) for s in won),
        "recentQuotes": _most_recent(quotes),
        "recentSales": _most_recent(sales),
        "recentOrders": _most_recent(orders),
    }


SAMPLE_CUSTOMERS = [
    {
        "name": "Acme Corporation",
        "email": "contact@acme.com",
        "phone": "555-123-4567",
        "address": "123 Business Ave, Suite 100, New York, NY 10001",
        "contactPerson": "John Smith",
        "notes": "Large enterprise client with multiple departments",
    },
    {
        "name": "TechStart Inc.",
        "email": "info@techstart.io",
        "phone": "555-987-6543",
        "address": "456 Innovation Blvd, San Francisco, CA 94107",
        "contactPerson": "Sarah Johnson",
        "notes": "Startup with rapid growth, interested in premium services",
    },
    {
        "name": "Global Retail Solutions",
        "email": "sales@globalretail.com",
        "phone": "555-456-7890",
        "address": "789 Commerce St, Chicago, IL 60611",
        "contactPerson": "Michael Chen",
        "notes": "Retail chain looking for enterprise solutions",
    },
]

SAMPLE_PRODUCTS = [
    {
        "name": "Standard Software License",
        "category": "Software",
        "priceTiers": [
            {"upToQuantity": 10, "price": 1200.00},
            {"upToQuantity": 100, "price": 1100.00},
            {"upToQuantity": 10000, "price": 1000.00},
        ],
        "description": "A standard license for our flagship software.",
    },
    {"name": "Premium Support Package", "category": "Service", "price": 500.00, "description": "1-year premium support with 24/7 access."},
    {"name": "Consulting Hour", "category": "Service", "price": 150.00, "description": "One hour of expert consultation."},
    {"name": "Hardware Component A", "category": "Hardware", "price": 350.00, "description": "Essential hardware component for system integration."},
    {"name": "Training Workshop", "category": "Training", "price": 2000.00, "description": "Full-day training workshop for up to 10 people."},
]


def seed_products(store: "RecordStore") -> int:
    """Add the sample catalog when the products collection is empty."""
    if get_products(store):
        return 0
    for product in SAMPLE_PRODUCTS:
        add_product(store, product)
    return len(SAMPLE_PRODUCTS)


def seed_sample_data(store: "RecordStore", *, now: datetime | None = None) -> dict[str, Any]:
    """
    Reset customers/quotes/sales/orders to a small demo data set.
    Products and templates are only seeded when their collections are empty.
    """
    now = now or datetime.now(timezone.utc)
    for collection in (CUSTOMERS, QUOTES, SALES, ORDERS):
        store.clear(collection)

    customer_ids = [add_customer(store, c)["id"] for c in SAMPLE_CUSTOMERS]

    quotes = [
        {
            "customerId": customer_ids[0],
            "title": "Enterprise Software Package",
            "description": "Complete enterprise software solution including CRM, ERP, and analytics",
            "items": [
                {"description": "CRM Software License", "quantity": 1, "price": 5000},
                {"description": "ERP Module", "quantity": 1, "price": 7500},
                {"description": "Analytics Dashboard", "quantity": 1, "price": 3000},
                {"description": "Implementation Services", "quantity": 40, "price": 150},
            ],
            "subtotal": 21500,
            "tax": 1720,
            "total": 23220,
            "validUntil": (now + timedelta(days=30)).isoformat(),
            "_status": "sent",
        },
        {
            "customerId": customer_ids[1],
            "title": "Startup Growth Package",
            "description": "Tailored software package for growing startups",
            "items": [
                {"description": "CRM Starter License", "quantity": 1, "price": 2000},
                {"description": "Marketing Automation", "quantity": 1, "price": 1500},
                {"description": "Technical Support (1 year)", "quantity": 1, "price": 1200},
            ],
            "subtotal": 4700,
            "tax": 376,
            "total": 5076,
            "validUntil": (now + timedelta(days=15)).isoformat(),
            "_status": "accepted",
        },
    ]
    quote_ids = []
    for q in quotes:
        status = q.pop("_status")
        rec = add_quote(store, q)
        update_quote(store, rec["id"], {"status": status})
        quote_ids.append(rec["id"])

    sales = [
        {
            "quoteId": quote_ids[1],
            "customerId": customer_ids[1],
            "title": "Startup Growth Package Sale",
            "description": "Sale from accepted quote for TechStart Inc.",
            "amount": 5076,
            "expectedCloseDate": (now + timedelta(days=7)).isoformat(),
            "_status": "won",
        },
        {
            "customerId": customer_ids[0],
            "title": "Maintenance Contract",
            "description": "Annual maintenance contract for existing systems",
            "amount": 12000,
            "expectedCloseDate": (now + timedelta(days=14)).isoformat(),
            "_status": "negotiation",
        },
    ]
    for sale in sales:
        status = sale.pop("_status")
        rec = add_sale(store, sale)
        update_sale(store, rec["id"], {"status": status})

    orders = [
        {
            "customerId": customer_ids[1],
            "quoteId": quote_ids[1],
            "shippingAddress": SAMPLE_CUSTOMERS[1]["address"],
            "carrier": "ups",
            "items": [
                {"productName": "CRM Starter License", "quantity": 1, "unitPrice": 2000},
                {"productName": "Marketing Automation", "quantity": 1, "unitPrice": 1500},
            ],
        },
        {
            "customerId": customer_ids[2],
            "shippingAddress": SAMPLE_CUSTOMERS[2]["address"],
            "items": [{"productName": "Hardware Component A", "quantity": 4, "unitPrice": 350}],
        },
    ]
    order_ids = [add_order(store, o, now=now)["id"] for o in orders]
    update_order_status(store, order_ids[0], "shipped")
    update_delivery_status(store, order_ids[0], "in_transit", now=now)

    products_added = seed_products(store)
    templates_added = seed_templates(store)
    logger.info(
        "Seeded sample data: customers=%s quotes=%s sales=%s orders=%s products=%s templates=%s",
        len(customer_ids),
        len(quote_ids),
        len(sales),
        len(order_ids),
        products_added,
        templates_added,
    )
    return {
        "customerIds": customer_ids,
        "quoteIds": quote_ids,
        "orderIds": order_ids,
        "message": "Sample data has been added successfully",
    }
