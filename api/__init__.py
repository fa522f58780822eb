# API module - Client for the local service bus

from .client import ArgusClient, APIConfig, APIResponse, APIStatus

__all__ = ["ArgusClient", "APIConfig", "APIResponse", "APIStatus"]
