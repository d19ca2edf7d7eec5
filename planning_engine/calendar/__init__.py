"""Value objects, RRULE handling and recurrence expansion."""
