"""Upload pipeline orchestration, progress and summary output."""
