"""Outreach Studio: AI-assisted recruiting email campaign authoring."""
