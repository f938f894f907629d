"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the chat and notification
apps. Nothing here knows about conversations or messages.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Managers (import from core.managers):
    - SoftDeleteManager: Filter deleted records by default
    - SoftDeleteQuerySet: QuerySet whose delete() is a soft delete

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - AuthenticationError: Missing or invalid credentials

REST plumbing:
    - core.exception_handler.api_exception_handler: Uniform error envelope
    - core.pagination.PageLimitPagination: page/limit pagination envelope
    - core.views.health_check: Load balancer health endpoint

Validators (import from core.validators):
    - validate_file_size: File size validation
    - validate_file_extension: File extension validation
    - validate_file_mime_type: Content-based MIME type validation
    - detect_mime_type: MIME type detected from file content

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin
    from core.managers import SoftDeleteManager
    from core.services import BaseService, ServiceResult

    class Message(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()
        all_objects = models.Manager()
        text = models.TextField()

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import AuthenticationError, BaseApplicationError

# Validators (depends on Django ValidationError but not app registry)
from .validators import (
    detect_mime_type,
    validate_file_extension,
    validate_file_mime_type,
    validate_file_size,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "AuthenticationError",
    # Validators
    "validate_file_size",
    "validate_file_extension",
    "validate_file_mime_type",
    "detect_mime_type",
]
