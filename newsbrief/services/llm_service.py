import structlog
from typing import Optional, List
from enum import Enum

import openai
import anthropic

from ..exceptions import LLMServiceError

logger = structlog.get_logger(__name__)


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class LLMService:
    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        openai_model_name: str = "gpt-4o-mini",
        anthropic_model_name: str = "claude-3-haiku-20240307",
        timeout_seconds: float = 30.0
    ):
        self.openai_model_name = openai_model_name
        self.anthropic_model_name = anthropic_model_name

        self.openai_client = None
        self.anthropic_client = None

        if openai_api_key:
            try:
                self.openai_client = openai.AsyncOpenAI(api_key=openai_api_key, timeout=timeout_seconds)
                logger.info("llm_client_initialized", provider=LLMProvider.OPENAI.value)
            except Exception as e:
                logger.warning("llm_client_init_failed", provider=LLMProvider.OPENAI.value, error=str(e))

        if anthropic_api_key:
            try:
                self.anthropic_client = anthropic.AsyncAnthropic(api_key=anthropic_api_key, timeout=timeout_seconds)
                logger.info("llm_client_initialized", provider=LLMProvider.ANTHROPIC.value)
            except Exception as e:
                logger.warning("llm_client_init_failed", provider=LLMProvider.ANTHROPIC.value, error=str(e))

    @property
    def is_available(self) -> bool:
        return bool(self.get_available_providers())

    async def generate_with_fallback(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.6,
        max_tokens: int = 1200
    ) -> str:
        """
        Generate a completion, trying OpenAI first and Anthropic second.

        Raises:
            LLMServiceError: no provider is configured, or every provider failed
        """
        providers = self.get_available_providers()
        if not providers:
            raise LLMServiceError("No LLM provider configured", error_code="LLM_NOT_CONFIGURED")

        errors = {}
        for provider in providers:
            try:
                return await self._generate_with_provider(
                    provider, system_prompt, user_prompt, temperature, max_tokens
                )
            except LLMServiceError as e:
                logger.warning("llm_provider_failed", provider=provider.value, error=e.message)
                errors[provider.value] = e.message

        raise LLMServiceError("All LLM providers failed", error_code="LLM_FAILED", details=errors)

    async def _generate_with_provider(
        self,
        provider: LLMProvider,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int
    ) -> str:
        if provider == LLMProvider.OPENAI:
            return await self._generate_openai(system_prompt, user_prompt, temperature, max_tokens)
        return await self._generate_anthropic(system_prompt, user_prompt, temperature, max_tokens)

    async def _generate_openai(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        try:
            response = await self.openai_client.chat.completions.create(
                model=self.openai_model_name,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ]
            )
        except openai.AuthenticationError as e:
            raise LLMServiceError(f"OpenAI authentication failed: {str(e)}")
        except openai.RateLimitError as e:
            raise LLMServiceError(f"OpenAI rate limit exceeded: {str(e)}")
        except openai.OpenAIError as e:
            raise LLMServiceError(f"OpenAI generation failed: {str(e)}")

        result = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not result:
            raise LLMServiceError("OpenAI returned empty content")

        logger.info("llm_generation_completed", provider=LLMProvider.OPENAI.value,
                    model=self.openai_model_name, response_length=len(result))
        return result

    async def _generate_anthropic(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        try:
            response = await self.anthropic_client.messages.create(
                model=self.anthropic_model_name,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[
                    {"role": "user", "content": user_prompt}
                ]
            )
        except anthropic.AnthropicError as e:
            raise LLMServiceError(f"Anthropic generation failed: {str(e)}")

        text_blocks = [getattr(block, "text", "") for block in (response.content or [])]
        result = "".join(text_blocks).strip()
        if not result:
            raise LLMServiceError("Anthropic returned empty content")

        logger.info("llm_generation_completed", provider=LLMProvider.ANTHROPIC.value,
                    model=self.anthropic_model_name, response_length=len(result))
        return result

    def get_available_providers(self) -> List[LLMProvider]:
        """Configured providers in fallback order."""
        providers = []
        if self.openai_client:
            providers.append(LLMProvider.OPENAI)
        if self.anthropic_client:
            providers.append(LLMProvider.ANTHROPIC)
        return providers
