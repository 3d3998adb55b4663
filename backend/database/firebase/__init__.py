"""Firestore-backed connectors."""
