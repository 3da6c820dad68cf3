"""HTTP boundary for calendar_range."""
