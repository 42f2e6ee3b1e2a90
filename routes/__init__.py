# Routes package __init__.py - re-exports routers for main.py convenience
from .templates import router as templates_router
from .phases import router as phases_router

__all__ = ['templates_router', 'phases_router']
