"""Domain modules over the record store (customers, quotes, sales, products, orders, templates, dashboard)."""
from datetime import datetime, timezone

import pytest

from app.opspanel.modules.customers.service import add_customer, get_customers, validate_customer_payload
from app.opspanel.modules.dashboard.service import SAMPLE_PRODUCTS, dashboard_stats, seed_products, seed_sample_data
from app.opspanel.modules.orders.service import (
    add_order,
    get_order_by_id,
    update_delivery_status,
    update_order,
    update_order_status,
    validate_order_payload,
)
from app.opspanel.modules.products.service import (
    add_product,
    get_products,
    price_for_quantity,
    update_product,
    validate_product_payload,
)
from app.opspanel.modules.quotes.service import add_quote, get_quote_by_id, update_quote, validate_quote_payload
from app.opspanel.modules.sales.service import add_sale, convert_quote_to_sale, get_sales, update_sale
from app.opspanel.modules.templates.service import (
    get_template,
    get_templates,
    render_text,
    reset_template,
    save_template,
    seed_templates,
)
from app.opspanel.records import RecordNotFound, RecordStore
from app.opspanel.storage import MemoryStorage


@pytest.fixture()
def store():
    return RecordStore(MemoryStorage())


def test_add_quote_seeds_draft_status(store):
    quote = add_quote(store, {"customerId": "c1", "amount": 500})
    assert quote["customerId"] == "c1"
    assert quote["amount"] == 500
    assert quote["status"] == "draft"
    assert quote["id"]
    assert get_quote_by_id(store, quote["id"]) == quote


def test_add_quote_overrides_caller_status(store):
    quote = add_quote(store, {"customerId": "c1", "status": "accepted"})
    assert quote["status"] == "draft"


def test_add_sale_seeds_lead_status(store):
    sale = add_sale(store, {"customerId": "c1", "amount": 100, "status": "won"})
    assert sale["status"] == "lead"
    update_sale(store, sale["id"], {"status": "won"})
    assert get_sales(store)[0]["status"] == "won"


def test_customers_use_their_own_collection(store):
    add_customer(store, {"name": "Acme"})
    assert [c["name"] for c in get_customers(store)] == ["Acme"]
    assert store.get_all("customers") == get_customers(store)
    assert store.get_all("quotes") == []


def test_validate_payloads():
    assert validate_customer_payload({"name": "Acme", "email": "a@acme.com"}) == []
    assert validate_customer_payload({}) == ["Name is required."]
    assert validate_customer_payload({"phone": "1"}, is_update=True) == []
    assert "Invalid email format." in validate_customer_payload({"name": "A", "email": "nope"})
    assert validate_quote_payload({"customerId": "c1", "total": 5}) == []
    assert validate_quote_payload({}) == ["customerId is required."]
    assert validate_quote_payload({"status": "bogus"}, is_update=True)
    assert validate_quote_payload({"customerId": "c1", "total": -1}) == ["total cannot be negative."]
    assert validate_product_payload({"name": "Widget", "price": 3}) == []
    assert validate_product_payload({"name": "Widget", "priceTiers": [{"upToQuantity": "x"}]})


def test_add_product_turns_price_into_default_tier(store):
    product = add_product(store, {"name": "Consulting Hour", "price": 150})
    assert "price" not in product
    assert product["priceTiers"] == [{"upToQuantity": 10000, "price": 150}]


def test_add_product_keeps_explicit_tiers(store):
    tiers = [{"upToQuantity": 10, "price": 12}, {"upToQuantity": 100, "price": 10}]
    product = add_product(store, {"name": "License", "price": 99, "priceTiers": tiers})
    assert product["priceTiers"] == tiers
    assert "price" not in product


def test_update_product_drops_price_when_tiers_given(store):
    product = add_product(store, {"name": "License", "price": 5})
    updated = update_product(store, product["id"], {"price": 7, "priceTiers": [{"upToQuantity": 5, "price": 7}]})
    assert "price" not in updated
    assert updated["priceTiers"] == [{"upToQuantity": 5, "price": 7}]


def test_price_for_quantity():
    product = {
        "priceTiers": [
            {"upToQuantity": 100, "price": 1100.0},
            {"upToQuantity": 10, "price": 1200.0},
            {"upToQuantity": 10000, "price": 1000.0},
        ]
    }
    assert price_for_quantity(product, 1) == 1200.0
    assert price_for_quantity(product, 10) == 1200.0
    assert price_for_quantity(product, 11) == 1100.0
    assert price_for_quantity(product, 5000) == 1000.0
    assert price_for_quantity(product, 20000) == 1000.0
    assert price_for_quantity({"priceTiers": []}, 1) == 0
    assert price_for_quantity(None, 1) == 0


def test_convert_quote_to_sale(store):
    quote = add_quote(store, {"customerId": "c1", "total": 5076, "description": "Growth package"})
    sale = convert_quote_to_sale(store, quote["id"])
    assert sale["status"] == "lead"
    assert sale["quoteId"] == quote["id"]
    assert sale["customerId"] == "c1"
    assert sale["amount"] == 5076
    assert sale["title"] == f"Sale from quote #{quote['id'][:8]}"
    assert get_quote_by_id(store, quote["id"])["status"] == "accepted"


def test_convert_unknown_quote_returns_none(store):
    assert convert_quote_to_sale(store, "missing") is None
    assert get_sales(store) == []


def test_dashboard_stats(store):
    q1 = add_quote(store, {"customerId": "c1", "total": 100})
    q2 = add_quote(store, {"customerId": "c1", "total": "50.5"})
    add_quote(store, {"customerId": "c2"})
    update_quote(store, q1["id"], {"status": "sent"})
    update_quote(store, q2["id"], {"status": "declined"})
    won = add_sale(store, {"customerId": "c1", "amount": 300})
    lost = add_sale(store, {"customerId": "c1", "amount": 999})
    add_sale(store, {"customerId": "c2", "amount": 1})
    update_sale(store, won["id"], {"status": "won"})
    update_sale(store, lost["id"], {"status": "lost"})
    add_customer(store, {"name": "Acme"})

    stats = dashboard_stats(store)
    assert stats["totalQuotes"] == 3
    assert stats["totalSales"] == 3
    assert stats["totalCustomers"] == 1
    assert stats["pendingQuotes"] == 1
    assert stats["declinedQuotes"] == 1
    assert stats["acceptedQuotes"] == 0
    assert stats["wonSales"] == 1
    assert stats["lostSales"] == 1
    assert stats["activeSales"] == 1
    assert stats["totalQuoteValue"] == pytest.approx(150.5)
    assert stats["totalSalesValue"] == pytest.approx(300)
    assert len(stats["recentQuotes"]) == 3


def test_recent_lists_are_newest_first_and_capped():
    stamps = iter(f"2026-01-{d:02d}T00:00:00Z" for d in range(1, 32))
    store = RecordStore(MemoryStorage(), clock=lambda: next(stamps))
    ids = [add_quote(store, {"customerId": "c"})["id"] for _ in range(7)]
    recent = dashboard_stats(store)["recentQuotes"]
    assert [q["id"] for q in recent] == list(reversed(ids))[:5]


def test_seed_sample_data_resets_and_is_repeatable(store):
    add_customer(store, {"name": "Leftover"})
    result = seed_sample_data(store)
    assert len(result["customerIds"]) == 3
    assert len(result["quoteIds"]) == 2

    stats = dashboard_stats(store)
    assert stats["totalCustomers"] == 3
    assert stats["totalQuotes"] == 2
    assert stats["pendingQuotes"] == 1
    assert stats["acceptedQuotes"] == 1
    assert stats["wonSales"] == 1
    assert stats["totalSalesValue"] == 5076
    assert len(get_products(store)) == len(SAMPLE_PRODUCTS)

    seed_sample_data(store)
    assert dashboard_stats(store)["totalCustomers"] == 3
    assert len(get_products(store)) == len(SAMPLE_PRODUCTS)


def test_seed_products_only_when_empty(store):
    add_product(store, {"name": "Existing", "price": 1})
    assert seed_products(store) == 0
    assert len(get_products(store)) == 1


def test_add_product_converts_numeric_strings(store):
    product = add_product(store, {"name": "Cups", "priceTiers": [{"upToQuantity": "100", "price": "2.5"}, {"upToQuantity": 10, "price": 3}]})
    assert product["priceTiers"] == [{"upToQuantity": 10, "price": 3}, {"upToQuantity": 100, "price": 2.5}]
    assert price_for_quantity(product, 50) == 2.5
    assert add_product(store, {"name": "Hour", "price": "150"})["priceTiers"] == [{"upToQuantity": 10000, "price": 150}]
    assert validate_product_payload({"name": "X", "priceTiers": [{"upToQuantity": 5, "price": -1}]})
    assert validate_product_payload({"name": "X", "price": "nan"})


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_add_order_starts_pending_with_delivery(store):
    order = add_order(
        store,
        {"customerId": "c1", "status": "delivered", "items": [{"productName": " Mug ", "quantity": 2, "unitPrice": 3}]},
        now=NOW,
    )
    assert order["status"] == "pending"
    assert order["items"] == [{"productName": "Mug", "description": "", "quantity": 2, "unitPrice": 3, "totalPrice": 6}]
    assert order["totalAmount"] == 6
    assert order["delivery"] == {
        "status": "pending",
        "carrier": "fedex",
        "estimatedDelivery": "2026-03-08T12:00:00Z",
        "actualDelivery": None,
    }


def test_delivery_status_stamps_actual_delivery_only_when_delivered(store):
    oid = add_order(store, {"customerId": "c1", "items": [{"productName": "Mug"}]}, now=NOW)["id"]

    order = update_delivery_status(store, oid, "in_transit", now=NOW)
    assert order["delivery"]["actualDelivery"] is None

    order = update_delivery_status(store, oid, "delivered", now=NOW)
    assert order["delivery"]["status"] == "delivered"
    assert order["delivery"]["actualDelivery"] == "2026-03-01T12:00:00Z"
    stamped = order["updatedAt"]
    assert update_delivery_status(store, oid, "delivered")["updatedAt"] == stamped

    assert update_delivery_status(store, oid, "out_for_delivery")["delivery"]["actualDelivery"] is None

    with pytest.raises(ValueError):
        update_delivery_status(store, oid, "lost")
    with pytest.raises(RecordNotFound):
        update_delivery_status(store, "missing", "delivered")


def test_order_status_and_edits(store):
    oid = add_order(store, {"customerId": "c1", "items": [{"productName": "Mug", "unitPrice": 1}]})["id"]
    assert update_order_status(store, oid, "processing")["status"] == "processing"
    with pytest.raises(ValueError):
        update_order_status(store, oid, "refunded")

    order = update_order(store, oid, {"items": [{"productName": "Plate", "quantity": 4, "unitPrice": 2.5}], "carrier": "ups"})
    assert order["totalAmount"] == 10
    assert order["delivery"]["carrier"] == "ups"
    assert order["delivery"]["status"] == "pending"
    assert get_order_by_id(store, oid)["status"] == "processing"


def test_validate_order_payload():
    assert validate_order_payload({"customerId": "c1", "items": [{"productName": "Mug", "quantity": 1}]}) == []
    assert "items must be a non-empty list." in validate_order_payload({"customerId": "c1"})
    assert validate_order_payload({"customerId": "c1", "items": [{"productName": "Mug", "quantity": 0}]})
    assert validate_order_payload({"customerId": "c1", "items": [{"productName": "Mug", "unitPrice": -2}]})
    assert validate_order_payload({"carrier": "pigeon"}, is_update=True)
    assert validate_order_payload({"shippingAddress": "2 Side St"}, is_update=True) == []


def test_templates_fall_back_to_defaults_without_writing(store):
    templates = get_templates(store, "email")
    assert templates["quote"]["name"] == "Quote Email Template"
    assert templates["quote"]["type"] == "quote"
    assert store.get_all("email_templates") == []
    assert get_template(store, "pdf", "invoice") is None
    with pytest.raises(ValueError):
        get_templates(store, "sms")


def test_save_and_reset_template(store):
    save_template(store, "email", "orderConfirmation", {"name": "Confirm", "subject": "S", "html": "H"})
    assert get_template(store, "email", "orderConfirmation")["subject"] == "S"
    save_template(store, "email", "orderConfirmation", {"name": "Confirm", "subject": "S2", "html": "H"})
    assert len(store.get_all("email_templates")) == 1
    assert get_template(store, "email", "orderConfirmation")["subject"] == "S2"

    reset_template(store, "email", "orderConfirmation")
    assert get_template(store, "email", "orderConfirmation")["name"] == "Order Confirmation Template"
    with pytest.raises(ValueError):
        save_template(store, "email", "invoice", {"name": "a", "subject": "b", "html": "c"})


def test_seed_templates_only_when_empty(store):
    assert seed_templates(store) == 5
    save_template(store, "pdf", "quote", {"name": "Mine"})
    assert seed_templates(store) == 0
    assert get_template(store, "pdf", "quote")["name"] == "Mine"


def test_render_text_placeholders_and_conditionals():
    text = "Order {{order_number}}{{#if tracking_number}} tracking {{tracking_number}}{{/if}} {{unknown}}"
    assert render_text(text, {"order_number": "A<1>", "tracking_number": "Z9"}) == "Order A&lt;1&gt; tracking Z9 {{unknown}}"
    assert render_text(text, {"order_number": "A1"}) == "Order A1 {{unknown}}"
    assert render_text("{{name}}", {"name": "R&D"}, escape=False) == "R&D"


def test_seed_sample_data_includes_orders(store):
    result = seed_sample_data(store, now=NOW)
    assert len(result["orderIds"]) == 2
    stats = dashboard_stats(store)
    assert stats["totalOrders"] == 2
    assert stats["pendingOrders"] == 1
    assert stats["openDeliveries"] == 2
    shipped = get_order_by_id(store, result["orderIds"][0])
    assert shipped["status"] == "shipped"
    assert shipped["delivery"]["status"] == "in_transit"
    assert shipped["totalAmount"] == 3500
    assert len(store.get_all("pdf_templates")) == 2
