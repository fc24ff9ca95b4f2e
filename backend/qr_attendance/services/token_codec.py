"""Signed, self-describing QR session tokens."""
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime

from itsdangerous import BadData, URLSafeSerializer

from qr_attendance.errors import InvalidToken

MAX_TOKEN_LENGTH = 1024
NONCE_BYTES = 12


@dataclass(frozen=True)
class TokenPayload:
    """Claims bound into a token."""
    class_id: int
    issued_at: datetime
    nonce: str


class TokenCodec:
    """Encode and verify QR tokens without touching the database.

    A token is ``<payload>.<signature>`` where the payload carries the class,
    the issue time and a random nonce. Only structure and signature are
    checked here; freshness and session membership belong to the session
    manager.
    """

    def __init__(self, secret_key: str, salt: str = 'qr-attendance-token'):
        if not secret_key:
            raise ValueError("A secret key is required to sign QR tokens")
        # SHA-384 digests are 48 bytes, which base64 encodes without slack bits,
        # so every character of the signature is significant.
        self._serializer = URLSafeSerializer(
            secret_key,
            salt=salt,
            signer_kwargs={'digest_method': hashlib.sha384}
        )

    @staticmethod
    def new_nonce() -> str:
        return secrets.token_urlsafe(NONCE_BYTES)

    def encode(self, class_id: int, issued_at: datetime, nonce: str) -> str:
        payload = {
            'c': class_id,
            't': issued_at.isoformat(),
            'n': nonce
        }
        return self._serializer.dumps(payload)

    def decode(self, token: str) -> TokenPayload:
        if not isinstance(token, str) or not token or len(token) > MAX_TOKEN_LENGTH:
            raise InvalidToken()

        try:
            payload = self._serializer.loads(token)
        except BadData:
            raise InvalidToken()

        if not isinstance(payload, dict):
            raise InvalidToken()

        class_id = payload.get('c')
        issued_at = payload.get('t')
        nonce = payload.get('n')

        if not isinstance(class_id, int) or isinstance(class_id, bool):
            raise InvalidToken()
        if not isinstance(issued_at, str) or not isinstance(nonce, str) or not nonce:
            raise InvalidToken()

        try:
            issued_at = datetime.fromisoformat(issued_at)
        except ValueError:
            raise InvalidToken()

        return TokenPayload(class_id=class_id, issued_at=issued_at, nonce=nonce)
