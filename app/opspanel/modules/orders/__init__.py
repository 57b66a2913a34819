"""Orders module: `orders` collection, each order carries its items and a delivery record."""
