"""Internal helpers with no runnerctl service dependencies."""
