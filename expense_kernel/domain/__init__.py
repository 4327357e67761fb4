"""Pure domain values for the expense kernel."""
