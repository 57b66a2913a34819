"""
Customers module.

Free-form customer records (name, email, phone, address, contactPerson,
notes) kept in the `customers` collection.
"""
