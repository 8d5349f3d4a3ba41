"""Match data collaborator backed by football-data.org v4 or static sample data."""
