"""Domain layer — units, naming rules, compiler contracts, errors.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
