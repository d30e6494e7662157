from __future__ import annotations
import logging
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import InvalidResponseError
from .extract import extract_image, extract_text
from .models import GeneratedArtifact, ToolRequest
from .ports import CredentialProvider, TransportFactory
from genstudio.resilience.retry import RetryPolicy, RetryScheduler

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class GenerationGateway:
    """
    Single way out to the model. Each attempt resolves the current key and
    builds a fresh transport from it, inside the retry loop.
    """

    def __init__(self, credentials: CredentialProvider, transport_factory: TransportFactory,
                 policy: Optional[RetryPolicy] = None, *, scheduler: Optional[RetryScheduler] = None):
        self.credentials = credentials
        self.transport_factory = transport_factory
        self.scheduler = scheduler or RetryScheduler(policy)

    async def _call(self, request: ToolRequest) -> Any:
        transport = self.transport_factory(self.credentials.resolve())
        logger.debug("-> %s model=%s images=%d", getattr(transport, "name", "?"), request.model, len(request.images))
        return await transport.generate(request)

    async def generate_image(self, request: ToolRequest) -> GeneratedArtifact:
        async def attempt() -> GeneratedArtifact:
            return extract_image(await self._call(request))
        return await self.scheduler.execute(attempt)

    async def generate_json(self, request: ToolRequest, model_cls: Type[M]) -> M:
        async def attempt() -> str:
            return extract_text(await self._call(request))
        text = await self.scheduler.execute(attempt)
        try:
            return model_cls.model_validate_json(text)
        except ValidationError as e:
            raise InvalidResponseError(f"Unexpected response shape: {e}") from e
