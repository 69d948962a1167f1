# src/voxelmind/policy/source.py
"""
Policy sources.

A policy source takes a structured ``PolicyContext`` and returns free-form
text that is expected (but not trusted) to contain one JSON object. The
engine always extracts and validates that object itself.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ollama import AsyncClient, ResponseError

from ..config.engine_config import PolicyConfig
from ..exceptions import PolicySourceError

logger = logging.getLogger(__name__)


@dataclass
class PolicyContext:
    """
    Everything the policy source sees for one request.

    Attributes:
        purpose: ``"decision"`` for a next-action request, ``"strategy"``
            for goal-priority advice.
        snapshot: Serialized sensor snapshot.
        goals: Goal statuses from the scheduler.
        behavior: Behavioral memory status.
        history: Recent history entries, oldest first.
        recommendation: Latest strategic recommendation, if any.
        last_decision: The previous chosen action, if any.
    """
    purpose: str
    snapshot: Dict[str, Any]
    goals: List[Dict[str, Any]] = field(default_factory=list)
    behavior: Dict[str, Any] = field(default_factory=dict)
    history: List[Dict[str, Any]] = field(default_factory=list)
    recommendation: Optional[str] = None
    last_decision: Optional[Dict[str, Any]] = None


@runtime_checkable
class PolicySource(Protocol):
    name: str

    async def propose(self, context: PolicyContext) -> str:
        """Return raw model text for ``context``. Raises PolicySourceError."""
        ...

    async def close(self) -> None:
        ...


class OllamaPolicySource:
    """Policy source backed by a local Ollama server."""

    name = "ollama"

    def __init__(self, config: Optional[PolicyConfig] = None, client: Optional[AsyncClient] = None):
        self.config = config or PolicyConfig()
        if client is not None:
            self._client = client
        else:
            self._client = AsyncClient(host=self.config.host, timeout=self.config.timeout_seconds)
            logger.debug(f"Ollama AsyncClient initialized (host: {self.config.host or 'library default'})")

    async def propose(self, context: PolicyContext) -> str:
        from .prompts import render_messages

        messages = render_messages(context)
        options = {"temperature": self.config.temperature, **self.config.options}
        logger.debug(f"Requesting {context.purpose} from Ollama model '{self.config.model}'")
        try:
            response = await self._client.chat(
                model=self.config.model,
                messages=messages,
                stream=False,
                options=options,
            )
        except ResponseError as e:
            detail = getattr(e, "error", None) or str(e)
            logger.error(f"Ollama API error: HTTP {e.status_code} - {detail}")
            if e.status_code == 404:
                raise PolicySourceError(
                    self.name, f"Model '{self.config.model}' not found. Pull it with `ollama pull {self.config.model}`."
                ) from e
            raise PolicySourceError(self.name, f"Ollama API error (HTTP {e.status_code}): {detail}") from e
        except asyncio.TimeoutError as e:
            raise PolicySourceError(self.name, "Request to Ollama timed out.") from e
        except Exception as e:
            logger.error(f"Unexpected error talking to Ollama: {e}", exc_info=True)
            raise PolicySourceError(self.name, f"Could not reach Ollama: {e}") from e

        content = _message_content(response)
        if not content or not content.strip():
            raise PolicySourceError(self.name, "Empty response from model.")
        return content

    async def close(self) -> None:
        closer = getattr(self._client, "_client", None)
        if closer is not None and hasattr(closer, "aclose"):
            await closer.aclose()
            logger.debug("Ollama client closed")


def _message_content(response: Any) -> Optional[str]:
    """Message text from a ChatResponse or a plain dict."""
    if isinstance(response, dict):
        return (response.get("message") or {}).get("content")
    message = getattr(response, "message", None)
    return getattr(message, "content", None) if message is not None else None
