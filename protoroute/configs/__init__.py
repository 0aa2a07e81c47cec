from .config_loader import ConfigLoader, load_router_config
from .router_config import SERVICE_ROUTER_REGISTER_COMPLETE, VIEW_ROUTER_REGISTER_COMPLETE, RouterConfig

__all__ = [
    'ConfigLoader', 'load_router_config', 'RouterConfig',
    'VIEW_ROUTER_REGISTER_COMPLETE', 'SERVICE_ROUTER_REGISTER_COMPLETE',
]
