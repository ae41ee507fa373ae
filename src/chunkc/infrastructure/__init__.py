"""Infrastructure layer — filesystem discovery and artifact I/O.

This layer may depend on domain types and configuration models.
It must never import from services, commands, or output.
"""
