# datefunnel/routers/errors.py
from fastapi import HTTPException

from datefunnel.scheduling.errors import SchedulingConflict, SchedulingError

FORBIDDEN_CODES = {"LEADER_ONLY", "NOT_A_TRAVELER"}


def to_http_exception(e: SchedulingError) -> HTTPException:
    """
    Validation errors -> 400, state conflicts -> 409 (403 for who-may-act
    rejections). The body always carries the machine code and message.
    """
    if isinstance(e, SchedulingConflict):
        status_code = 403 if e.code in FORBIDDEN_CODES else 409
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=e.to_dict())


def trip_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Trip not found")
