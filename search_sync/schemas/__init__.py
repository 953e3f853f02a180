"""Pydantic models for change notifications, stream entries and publish results."""
