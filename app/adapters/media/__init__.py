"""Media hosting adapters (photos and videos attached to submissions)."""
