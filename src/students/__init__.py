"""Student records: bulk CSV import pipeline and admin routes."""
