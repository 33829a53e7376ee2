"""Extraction job orchestrator for storage-box availability."""
