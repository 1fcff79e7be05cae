import logging
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature
from pydantic import ValidationError
from lendable.configs import SEED, TOKEN_TTL
from lendable.core.tenancy import Principal

logger = logging.getLogger(__name__)

SERIALIZER = None  # Will be initialized lazily


def _get_serializer():
    """Get or initialize the SERIALIZER lazily."""
    global SERIALIZER
    if SERIALIZER is None:
        SERIALIZER = URLSafeTimedSerializer(SEED, salt="lendable-principal")
    return SERIALIZER


def create_token(principal: Principal) -> str:
    """Returns a signed bearer token carrying the principal."""
    return _get_serializer().dumps(principal.model_dump(mode='json'))


def verify_token(token, max_age: int = TOKEN_TTL) -> Optional[Principal]:
    """Retrieves and verifies the principal from a signed token."""
    if not token:
        return None
    try:
        data = _get_serializer().loads(token, max_age=max_age)
        return Principal(**data)
    except BadSignature:
        return None
    except (TypeError, ValidationError) as e:
        logger.warning(f"Signed token with malformed principal: {e}")
        return None
