"""
Feature modules live under this package.

Keep module boundaries clean: each module owns its collection name, its
payload validation and its routes, while reusing platform primitives
(auth, RBAC, audit, record store).
"""
