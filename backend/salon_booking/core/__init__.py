# Core package initialization
# This file makes the core directory a Python package
# and allows importing core modules

from . import auth_decorators, exceptions, security

__all__ = [
    "auth_decorators",
    "exceptions",
    "security",
]
