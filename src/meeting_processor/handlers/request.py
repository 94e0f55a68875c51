"""Helpers for reading processing requests out of Lambda events."""

from typing import Any, Dict, Optional


def get_meeting_id(event: Dict[str, Any]) -> Optional[str]:
    """Meeting id from a direct invocation or an API Gateway path parameter."""
    if event.get("meeting_id"):
        return event["meeting_id"]
    path_parameters = event.get("pathParameters") or {}
    return path_parameters.get("meetingId")


def get_user_id(event: Dict[str, Any]) -> Optional[str]:
    """
    Caller identity, already verified upstream.

    Direct invocations pass ``user_id``; API Gateway requests carry the
    Cognito ``sub`` claim (or a custom authorizer ``principalId``).
    """
    if event.get("user_id"):
        return event["user_id"]

    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    claims = authorizer.get("claims") or (authorizer.get("jwt") or {}).get("claims") or {}
    return claims.get("sub") or authorizer.get("principalId")


def error_response(status_code: int, message: str, meeting_id: Optional[str]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "error": message,
        "meeting_id": meeting_id or "unknown",
    }
