"""
Base service class
"""

from abc import ABC


class BaseService(ABC):
    """
    Base class for all services.

    Services orchestrate stores and domain logic; routes only talk to services.
    """
    pass
