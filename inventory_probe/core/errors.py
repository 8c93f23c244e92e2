"""
Error taxonomy for provider operations.

Every adapter operation fails with one of the ProbeError subclasses below.
Only Throttled and TransientNetworkError (including OperationCancelled) are
eligible for caller-driven retry.
"""

from typing import Optional

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)


class ProbeError(Exception):
    """Base class for all provider operation failures"""

    retryable = False

    def __init__(self, message: str, code: str = "", operation: str = "", adapter: str = ""):
        super().__init__(message)
        self.message = message
        self.code = code
        self.operation = operation
        self.adapter = adapter

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        prefix = f"{self.adapter}.{self.operation}: " if self.operation else ""
        code = f" ({self.code})" if self.code else ""
        return f"{prefix}{self.message}{code}"


class AuthenticationFailure(ProbeError):
    pass


class NotFound(ProbeError):
    pass


class Throttled(ProbeError):
    retryable = True


class Conflict(ProbeError):
    pass


class TransientNetworkError(ProbeError):
    retryable = True


class OperationCancelled(TransientNetworkError):
    """Raised when a caller-supplied cancellation token fires mid-operation"""


class UnknownBackendError(ProbeError):
    pass


AUTH_CODES = {
    'AuthFailure',
    'UnauthorizedOperation',
    'InvalidClientTokenId',
    'InvalidAccessKeyId',
    'SignatureDoesNotMatch',
    'ExpiredToken',
    'ExpiredTokenException',
    'AccessDenied',
    'AccessDeniedException',
    'OptInRequired',
}

NOT_FOUND_CODES = {'NoSuchBucket', 'NoSuchKey', 'NotFound', '404'}

THROTTLE_CODES = {
    'Throttling',
    'ThrottlingException',
    'RequestLimitExceeded',
    'SlowDown',
    'TooManyRequestsException',
    'RequestThrottled',
    'RequestThrottledException',
}

CONFLICT_CODES = {
    'BucketAlreadyExists',
    'BucketAlreadyOwnedByYou',
    'BucketNotEmpty',
    'OperationAborted',
    'Conflict',
    'IncorrectState',
}

TRANSIENT_CODES = {
    'RequestTimeout',
    'RequestTimeoutException',
    'ServiceUnavailable',
    'InternalError',
    'InternalFailure',
    'Unavailable',
}


def classify_error_code(code: str, status: Optional[int] = None) -> type:
    """Map an AWS error code (and HTTP status) to a taxonomy class"""
    if code in AUTH_CODES or status in (401, 403):
        return AuthenticationFailure
    if code in NOT_FOUND_CODES or code.endswith('.NotFound') or status == 404:
        return NotFound
    if code in THROTTLE_CODES or status == 429:
        return Throttled
    if code in CONFLICT_CODES or status == 409:
        return Conflict
    if code in TRANSIENT_CODES or (status is not None and status >= 500):
        return TransientNetworkError
    return UnknownBackendError


def translate_error(exc: Exception, operation: str = "", adapter: str = "") -> ProbeError:
    """Translate a boto3/botocore exception into the probe error taxonomy"""
    if isinstance(exc, ProbeError):
        return exc

    if isinstance(exc, ClientError):
        error = exc.response.get('Error', {})
        code = str(error.get('Code', 'Unknown'))
        message = error.get('Message') or str(exc)
        status = exc.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
        error_class = classify_error_code(code, status)
        return error_class(message, code=code, operation=operation, adapter=adapter)

    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return AuthenticationFailure(str(exc), code=type(exc).__name__, operation=operation, adapter=adapter)

    if isinstance(exc, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError, ConnectionClosedError)):
        return TransientNetworkError(str(exc), code=type(exc).__name__, operation=operation, adapter=adapter)

    return UnknownBackendError(str(exc), code=type(exc).__name__, operation=operation, adapter=adapter)
