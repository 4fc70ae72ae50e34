"""Domain logic outside auth: password strength and the activity log."""
