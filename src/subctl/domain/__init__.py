"""Domain layer — statuses, commands, events, and calendar/money rules.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
