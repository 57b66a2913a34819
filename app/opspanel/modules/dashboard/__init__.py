"""Cross-collection views: dashboard stats and sample data seeding."""
