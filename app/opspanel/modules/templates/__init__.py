"""Document templates: email (`email_templates`) and PDF (`pdf_templates`) layouts keyed by template type."""
