"""Provider clients and the registry that maps providers to them."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Type, Union

from ..models import Provider
from .base import MalformedResponseError, ProviderClient
from .fingrid import FingridClient
from .fmi import FmiClient
from .request_utils import HttpTransport

__all__ = [
    "ProviderClient",
    "MalformedResponseError",
    "FingridClient",
    "FmiClient",
    "HttpTransport",
    "build_providers",
]

# Registry of available providers; add new sources here.
_CLIENTS: Dict[Provider, Type[ProviderClient]] = {
    Provider.FINGRID: FingridClient,
    Provider.FMI: FmiClient,
}


def build_providers(config_path: Optional[Union[str, Path]] = None) -> Mapping[Provider, ProviderClient]:
    """Instantiate every registered client once and return a read-only registry."""
    return MappingProxyType({provider: cls(config_path) for provider, cls in _CLIENTS.items()})
