from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError


class Conflict(APIException):
    """The request is valid but clashes with the current state of the resource."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource is not in a state that allows this action.'
    default_code = 'conflict'


def as_api_validation_error(exc: DjangoValidationError) -> ValidationError:
    if hasattr(exc, 'message_dict'):
        return ValidationError(exc.message_dict)
    return ValidationError({'detail': exc.messages})
