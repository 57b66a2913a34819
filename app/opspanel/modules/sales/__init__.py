"""Sales pipeline module: `sales` collection, new sales start as leads."""
