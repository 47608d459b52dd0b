from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar, List, Mapping, Optional, Union

import requests

from ..models import DataLine, DataType, FetchError, FetchRequest, FetchResult, Provider
from .config_loader import load_provider_config


class MalformedResponseError(ValueError):
    """Raised when a provider response body cannot be parsed."""


class ProviderClient(ABC):
    """
    Base class for provider clients.

    A client translates a normalised :class:`FetchRequest` into the wire request
    its endpoint understands, and parses replies back into a
    :class:`FetchResult`. Clients never perform I/O themselves.
    """

    provider: ClassVar[Provider] = Provider.UNSET
    config_key: ClassVar[str] = ""

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        self.config_path = Path(config_path) if config_path is not None else None
        self.provider_cfg: Mapping[str, object] = load_provider_config(self.config_path, self.config_key)

    @property
    @abstractmethod
    def data_type_map(self) -> Mapping[DataType, object]:
        """Upstream identifier for every implemented data type."""

    @abstractmethod
    def supported_days_per_request(self, request: FetchRequest) -> int:
        """Maximum span, in days, that one request of this kind may cover."""

    @abstractmethod
    def build_request(self, request: FetchRequest) -> requests.Request:
        """Create the wire request. ``request.data_type`` must be implemented."""

    @abstractmethod
    def parse_response(self, response: requests.Response, original_request: FetchRequest) -> FetchResult:
        """
        Parse a successful reply.

        Raises:
            MalformedResponseError: If the body does not have the expected shape.
        """

    @abstractmethod
    def parse_error(self, response: requests.Response) -> FetchError:
        """Classify a failed reply; ``FetchError.UNSET`` when it is not recognised."""

    def implements_data_type(self, data_type: DataType) -> bool:
        return data_type in self.data_type_map

    def implemented_data_types(self) -> List[DataType]:
        return sorted(self.data_type_map)

    def _require_implemented(self, request: FetchRequest) -> None:
        if not self.implements_data_type(request.data_type):
            raise ValueError(
                f"{type(self).__name__} does not implement data type {request.data_type.name}."
            )

    def _setting(self, key: str, default):
        return self.provider_cfg.get(key, default)

    def _result(self, original_request: FetchRequest, points, unit: str, *, location: str = "") -> FetchResult:
        return FetchResult(
            error=FetchError.NONE,
            data_line=DataLine(
                provider=original_request.provider,
                data_type=original_request.data_type,
                time_span=original_request.time_span,
                data_points=points,
                location=location,
                unit=unit,
            ),
        )
