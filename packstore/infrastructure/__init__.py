"""Infrastructure layer module.

Contains configuration, persistence and external HTTP clients.
"""
