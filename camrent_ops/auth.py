import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .gateway import Credential

logger = logging.getLogger(__name__)

# auto_error=False: a missing token is a workflow-level Unauthenticated result,
# reported without any backend call, not a transport error
security = HTTPBearer(auto_error=False)


async def get_credential(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Credential]:
    """
    Build the manager's backend credential from the incoming bearer token.

    The token is forwarded as-is; the CamRent backend is the one verifying it.
    """
    if not credentials:
        logger.debug("⚠️ No bearer token on console request")
        return None

    credential = Credential.from_token(credentials.credentials)
    if credential is None:
        logger.warning("⚠️ Empty bearer token on console request")
    return credential
