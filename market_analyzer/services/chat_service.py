"""LLM chat service wrapper using LangChain ChatOpenAI for market analysis generation."""

from __future__ import annotations

from typing import TypeVar

import httpx
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ChatService:
    """Encapsulates chat-completion calls and availability checks."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str | None,
        model: str,
        provider_name: str = "openrouter",
        default_headers: dict[str, str] | None = None,
        max_output_tokens: int = 1200,
    ) -> None:
        self._provider_name = provider_name.strip().lower() or "openrouter"
        self._model = model
        self._max_output_tokens = max(1, int(max_output_tokens))
        self._llm: ChatOpenAI | None = None
        self._http_client: httpx.Client | None = None
        if api_key and base_url:
            # Ignore process-wide proxy env vars so local shells with
            # placeholder proxy settings do not break outbound model calls.
            self._http_client = httpx.Client(trust_env=False)
            self._llm = ChatOpenAI(
                api_key=api_key,
                base_url=base_url,
                model=model,
                default_headers=default_headers,
                http_client=self._http_client,
                max_tokens=self._max_output_tokens,
                temperature=0.2,
                max_retries=0,
            )

    @property
    def is_available(self) -> bool:
        """Return True when chat generation can be executed."""

        return self._llm is not None

    @property
    def model(self) -> str:
        return self._model

    @property
    def provider_name(self) -> str:
        return self._provider_name

    def generate(self, *, system_prompt: str, user_prompt: str) -> str:
        """Run one chat completion and return plain text output."""

        llm = self._require_llm()
        chain = self._prompt() | llm
        result = chain.invoke({"system": system_prompt, "user": user_prompt})
        return (result.content or "").strip()

    def generate_structured(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        schema: type[SchemaT],
    ) -> SchemaT:
        """Run one chat completion constrained to `schema`; raises on invalid output."""

        llm = self._require_llm()
        chain = self._prompt() | llm.with_structured_output(schema)
        result = chain.invoke({"system": system_prompt, "user": user_prompt})
        if isinstance(result, schema):
            return result
        return schema.model_validate(result)

    def _require_llm(self) -> ChatOpenAI:
        if self._llm is None:
            raise RuntimeError(
                f"Chat service '{self._provider_name}' is not configured "
                "(missing provider API key/base URL)"
            )
        return self._llm

    def _prompt(self) -> ChatPromptTemplate:
        return ChatPromptTemplate.from_messages([
            ("system", "{system}"),
            ("human", "{user}"),
        ])
