"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Header, Request
from coop_lending.domain.roles import Actor, parse_role
from coop_lending.infrastructure.clients.directory import DirectoryClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(
    x_actor_id: str = Header(..., alias="X-Actor-Id", min_length=1),
    x_actor_role: str = Header(..., alias="X-Actor-Role"),
    x_actor_name: Optional[str] = Header(None, alias="X-Actor-Name"),
) -> Actor:
    """
    Caller identity as asserted by the authenticating gateway.

    Capability checks always use this explicit actor, never ambient state.
    """
    return Actor(id=x_actor_id, name=x_actor_name or x_actor_id, role=parse_role(x_actor_role))


def get_directory_client() -> DirectoryClient:
    """Provide user directory client instance"""
    return DirectoryClient()
