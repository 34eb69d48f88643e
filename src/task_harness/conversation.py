# conversation.py
# Conversation service: the remote side of the loop.
#
# The harness only needs two calls: open a conversation, send a message and
# get the assistant's reply. OpenRouterConversationService keeps the history
# locally and replays it through any OpenAI-compatible chat endpoint.

import uuid
from dataclasses import dataclass, field
from typing import Protocol

from openai import OpenAI
from pydantic import BaseModel

from task_harness.config import env_base_url


class Reply(BaseModel):
    content: str


class ConversationService(Protocol):
    def create_conversation(self, assistant_id: str, api_key: str) -> str: ...

    def send_message(self, conversation_id: str, text: str, api_key: str) -> Reply: ...


@dataclass
class _Conversation:
    model: str
    messages: list[dict] = field(default_factory=list)


class OpenRouterConversationService:
    """
    Conversation service backed by an OpenAI-compatible chat completions API.

    The assistant id is the model slug, e.g. "anthropic/claude-3.5-haiku".

    Example:
        service = OpenRouterConversationService()
        conversation_id = service.create_conversation("anthropic/claude-3.5-haiku", api_key)
        reply = service.send_message(conversation_id, "Hello", api_key)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 3,
    ) -> None:
        self._base_url = base_url or env_base_url()
        self._timeout = timeout
        self._max_retries = max_retries
        self._clients: dict[str, OpenAI] = {}
        self._conversations: dict[str, _Conversation] = {}

    def _client(self, api_key: str) -> OpenAI:
        client = self._clients.get(api_key)
        if client is None:
            client = OpenAI(
                base_url=self._base_url,
                api_key=api_key,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
            self._clients[api_key] = client
        return client

    def create_conversation(self, assistant_id: str, api_key: str) -> str:
        conversation_id = uuid.uuid4().hex
        self._conversations[conversation_id] = _Conversation(model=assistant_id)
        return conversation_id

    def history(self, conversation_id: str) -> list[dict]:
        return list(self._conversations[conversation_id].messages)

    def send_message(self, conversation_id: str, text: str, api_key: str) -> Reply:
        conversation = self._conversations[conversation_id]
        conversation.messages.append({"role": "user", "content": text})
        try:
            response = self._client(api_key).chat.completions.create(
                model=conversation.model,
                messages=conversation.messages,
            )
        except Exception:
            # Keep the history consistent: the failed turn never happened.
            conversation.messages.pop()
            raise

        content = (response.choices[0].message.content or "").strip()
        conversation.messages.append({"role": "assistant", "content": content})
        return Reply(content=content)
