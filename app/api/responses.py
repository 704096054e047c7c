from app.schemas.common import ErrorResponse

BAD_REQUEST = {400: {"model": ErrorResponse, "description": "Bad request"}}
NOT_FOUND = {404: {"model": ErrorResponse, "description": "Not found"}}
RATE_LIMITED = {429: {"model": ErrorResponse, "description": "Too many requests"}}
STORE_UNAVAILABLE = {500: {"model": ErrorResponse, "description": "Event store unavailable"}}
