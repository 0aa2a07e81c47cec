from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

VIEW_ROUTER_REGISTER_COMPLETE = 'VIEW_ROUTER_REGISTER_COMPLETE'
SERVICE_ROUTER_REGISTER_COMPLETE = 'SERVICE_ROUTER_REGISTER_COMPLETE'


class RouterConfig(BaseModel):
    """Runtime policy for registration, routing and integrity validation."""

    model_config = ConfigDict(extra='forbid', validate_assignment=True, frozen=False)

    strict_mode: bool = Field(
        default=True,
        description='Raise on routing defects. When False, defects are logged and the call degrades to a no-op.',
    )
    require_completion: bool = Field(
        default=False,
        description='Raise IncompleteRouteError when a synchronous factory returns without completing.',
    )
    validate_on_complete: bool = Field(
        default=True,
        description='Arm the integrity validators for both route families during bootstrap.',
    )
    publish_registration_events: bool = Field(
        default=True,
        description='Publish ROUTE_REGISTERED / REGISTRY_FROZEN on the event bus.',
    )
    view_complete_signal: str = Field(default=VIEW_ROUTER_REGISTER_COMPLETE, min_length=1)
    service_complete_signal: str = Field(default=SERVICE_ROUTER_REGISTER_COMPLETE, min_length=1)
    event_history_size: int = Field(default=1000, ge=0)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> 'RouterConfig':
        return cls.model_validate(data.get('router', data) if isinstance(data, dict) else data)
