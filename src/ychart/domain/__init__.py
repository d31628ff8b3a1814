"""Domain layer — document model, validation, card templates, hierarchy.

This layer depends only on stdlib, ruamel.yaml, networkx and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
