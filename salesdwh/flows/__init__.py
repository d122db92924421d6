"""Prefect flows for the sales warehouse."""
