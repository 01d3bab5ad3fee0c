"""Key management engine — services, models and records."""
