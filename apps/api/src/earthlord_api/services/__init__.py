"""Domain services composed from repositories and the shared geometry package."""
