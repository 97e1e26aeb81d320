"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps
(authentication, production, payments). No business logic lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ConflictError: State conflicts (HTTP 409)

Helpers (import from core.helpers):
    - hash_string: String hashing
    - add_months: Calendar month arithmetic with end-of-month clamping

Note:
    Django models are NOT imported here to avoid AppRegistryNotReady
    errors. Import them directly from core.models.
"""

from .exceptions import BaseApplicationError, ConflictError
from .helpers import add_months, hash_string
from .services import BaseService, ServiceResult

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ConflictError",
    # Helpers
    "add_months",
    "hash_string",
]
