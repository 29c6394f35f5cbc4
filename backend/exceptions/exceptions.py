from fastapi import status


class DriveException(Exception):
    """Base class for errors surfaced to API callers as structured responses."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "code": self.code, "message": self.message}


class NotFoundException(DriveException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "File not found"


class ForbiddenException(DriveException):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class UnauthorizedException(DriveException):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Not authenticated"


class InvalidOrExpiredTokenException(DriveException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "INVALID_OR_EXPIRED_TOKEN"
    default_message = "Share link is invalid or has expired"


class CycleDetectedException(DriveException):
    status_code = status.HTTP_409_CONFLICT
    code = "CYCLE_DETECTED"
    default_message = "Cannot move a folder into itself or one of its descendants"


class InvalidParentException(DriveException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_PARENT"
    default_message = "Parent folder not found or access denied"


class GranteeNotFoundException(DriveException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "GRANTEE_NOT_FOUND"
    default_message = "No user found with that email address"


class NotSharedException(DriveException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_SHARED"
    default_message = "File is not shared"


class ValidationException(DriveException):
    status_code = 422
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class ConflictException(DriveException):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource already exists"


class FileUploadException(DriveException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "UPLOAD_FAILED"
    default_message = "File upload failed"
