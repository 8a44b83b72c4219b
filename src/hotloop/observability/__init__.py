"""observability/ — structured logging and scheduler event history."""
