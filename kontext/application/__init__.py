"""Application layer: services and DTOs.

Depends on the domain and on infrastructure clients injected at
construction; nothing here imports FastAPI.
"""
