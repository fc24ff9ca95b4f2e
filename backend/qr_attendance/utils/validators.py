"""Request validation utilities."""
from typing import Any, Dict, List

from qr_attendance.errors import ValidationError
from qr_attendance.services.token_codec import MAX_TOKEN_LENGTH

class Validator:
    """Validation helper class."""

    @staticmethod
    def require_json(data: Any) -> Dict:
        """Ensure the request carried a JSON object."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> None:
        """Validate required fields in data."""
        missing = [field for field in required_fields if field not in data or data[field] in (None, '')]
        if missing:
            raise ValidationError(f"Missing required field: {', '.join(missing)}")

    @staticmethod
    def validate_token_string(token: Any) -> str:
        """Normalize a scanned or typed token."""
        if not isinstance(token, str):
            raise ValidationError("Token must be a string")
        token = token.strip()
        if not token:
            raise ValidationError("Token is required")
        if len(token) > MAX_TOKEN_LENGTH:
            raise ValidationError("Token is too long")
        return token

    @staticmethod
    def parse_positive_int(value: Any, name: str) -> int:
        """Parse a positive integer query parameter."""
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an integer")
        if number <= 0:
            raise ValidationError(f"{name} must be positive")
        return number
