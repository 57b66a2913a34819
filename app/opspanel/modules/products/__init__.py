"""
Product catalog module.

Products carry quantity-based `priceTiers` ([{upToQuantity, price}, ...])
instead of a single price.
"""
