"""
Firebase callable cloud functions: getCustomToken, sendVerificationEmail, deleteUserData
"""

import logging
from typing import Any, Optional

import httpx

from .. import config

logger = logging.getLogger(__name__)


class CloudFunctionError(Exception):
    """Raised when a callable function returns an error or cannot be reached"""

    def __init__(self, function_name: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{function_name}: {message}")
        self.function_name = function_name
        self.status_code = status_code


class CloudFunctionsClient:
    """Calls Firebase HTTPS callable functions using the {"data": ...} protocol"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = config.CLOUD_FUNCTIONS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.CLOUD_FUNCTIONS_BASE_URL or "").rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def call(
        self, function_name: str, data: dict[str, Any], id_token: Optional[str] = None
    ) -> Any:
        """
        Invoke a callable function and return its `result`.

        Returns None without calling anything when no base URL is configured.
        """
        if not self.configured:
            logger.warning(f"⚠️ CLOUD_FUNCTIONS_BASE_URL not set - skipping {function_name}")
            return None

        headers = {"Content-Type": "application/json"}
        if id_token:
            headers["Authorization"] = f"Bearer {id_token}"

        url = f"{self.base_url}/{function_name}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json={"data": data}, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ Cloud function {function_name} unreachable: {e}")
            raise CloudFunctionError(function_name, "function unreachable") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400 or "error" in payload:
            error = payload.get("error") or {}
            message = error.get("message") or f"HTTP {response.status_code}"
            logger.error(f"❌ Cloud function {function_name} failed: {message}")
            raise CloudFunctionError(function_name, message, status_code=response.status_code)

        logger.info(f"✅ Cloud function {function_name} succeeded")
        return payload.get("result")

    async def get_custom_token(self, uid: str) -> Optional[str]:
        """Mint a Firebase custom token for the given user ID"""
        result = await self.call("getCustomToken", {"uid": uid})
        if isinstance(result, dict):
            return result.get("token")
        return result

    async def send_verification_email(
        self, email: str, user_name: str, verification_token: str
    ) -> Any:
        verification_link = (
            f"{config.FRONTEND_URL}/verify?token={verification_token}"
        )
        return await self.call(
            "sendVerificationEmail",
            {
                "email": email,
                "userName": user_name,
                "verificationToken": verification_token,
                "verificationLink": verification_link,
            },
        )

    async def delete_user_data(self, uid: str, email: Optional[str] = None) -> Any:
        """Remove a user's auth record and remote documents"""
        return await self.call("deleteUserData", {"uid": uid, "email": email})


def get_cloud_functions() -> CloudFunctionsClient:
    """FastAPI dependency"""
    return CloudFunctionsClient()
