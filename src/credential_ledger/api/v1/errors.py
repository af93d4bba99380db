"""Translate temporal workflow errors into HTTP responses."""

from fastapi import HTTPException, status

from credential_ledger.core.errors import (
    AlreadyRevealedError,
    InvalidArgumentError,
    NotFoundError,
    NotYetDueError,
    ScheduleExistsError,
    StorageFailureError,
    TemporalError,
    VerificationFailedError,
)


def http_error_for(err: TemporalError) -> HTTPException:
    """Return the HTTPException matching a service error."""
    if isinstance(err, ScheduleExistsError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err))
    if isinstance(err, InvalidArgumentError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))
    if isinstance(err, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err))
    if isinstance(err, AlreadyRevealedError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(err),
                "revealed_at": err.revealed_at.isoformat() if err.revealed_at else None,
            },
        )
    if isinstance(err, NotYetDueError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": str(err),
                "deadline": err.deadline.isoformat(),
                "remaining_seconds": int(err.remaining.total_seconds()),
                "can_reveal_in_days": err.remaining_days,
            },
        )
    if isinstance(err, VerificationFailedError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Secret verification failed",
        )
    if isinstance(err, StorageFailureError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage temporarily unavailable",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Temporal workflow error",
    )
