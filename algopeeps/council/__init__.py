"""Event ingestion and distribution pipeline for the agent council."""
