"""Digital Service Billing web application."""
