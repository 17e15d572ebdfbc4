from transfer_gateway.client.base import TransferApiClient
from transfer_gateway.client.errors import RemoteApiError, RemoteConnectionError

__all__ = ["TransferApiClient", "RemoteApiError", "RemoteConnectionError"]
