# app/services/errors.py
from fastapi import HTTPException, status


class OrderNotFound(HTTPException):
    """No order matches the given id or order number."""

    def __init__(self, id_or_number: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )
        self.id_or_number = id_or_number


class InvalidTransition(HTTPException):
    """
    The requested event is not allowed from the order's current state.

    Raised both when the guard fails against the loaded row and when a
    conditional write lost a race to a transition with a different
    end state.
    """

    def __init__(self, event: str, current_status: str, reason: str | None = None):
        message = reason or f"Cannot {event.replace('_', ' ')} an order in status {current_status}"
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": message,
                "event": event,
                "status": current_status,
            },
        )
        self.event = event
        self.current_status = current_status
