"""Infrastructure layer — buffers, position cache, scheduling, chart engines.

This layer depends on stdlib and third-party libs (NetworkX, Jinja2,
watchdog). It must never import from domain, services, commands, or output.
The service layer bridges between domain models and infrastructure.
"""
