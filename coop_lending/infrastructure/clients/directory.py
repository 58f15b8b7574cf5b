"""User directory HTTP client for resolving staff and borrowers"""

import httpx
from dataclasses import dataclass
from typing import Optional
from coop_lending.domain.exceptions import DirectoryAPIError
from coop_lending.domain.roles import Role
from coop_lending.config import settings


@dataclass
class DirectoryUser:
    """User as known to the external directory"""

    id: str
    full_name: str
    role: Role


class DirectoryClient:
    """Client for the external user directory API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.directory_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def get_user(self, user_id: str) -> Optional[DirectoryUser]:
        """
        Look up a single user.

        Returns None when the directory does not know the id.

        Raises:
            DirectoryAPIError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"{self.base_url}/users/{user_id}")
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()

                return DirectoryUser(
                    id=str(data["id"]),
                    full_name=data["fullName"],
                    role=Role(data["role"]),
                )

            except httpx.TimeoutException as e:
                raise DirectoryAPIError(f"Directory API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DirectoryAPIError(f"Directory API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise DirectoryAPIError(f"Directory API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise DirectoryAPIError(f"Invalid user data from directory: {e}") from e
