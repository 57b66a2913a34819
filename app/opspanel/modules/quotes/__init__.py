"""Quotes module: `quotes` collection, every new quote starts as a draft."""
