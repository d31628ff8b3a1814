"""Output layer — rendering ServiceResult for humans or machines.

Output may import from services (for ServiceResult) but never from
commands.
"""
