"""
AI Assistant Clients.
Concrete AskModel and ParseWithLLM implementations for the analysis pipeline.

chatgpt uses the OpenAI API, perplexity uses the same SDK against Perplexity's
OpenAI-compatible endpoint, and gemini uses google-generativeai. Credentials
come from an explicit ProviderSettings, never from the environment.
"""

import logging
from typing import Dict, Optional

import google.generativeai as genai
from openai import AsyncOpenAI

from competitive.config import PERPLEXITY_BASE_URL, ProviderSettings
from competitive.errors import MissingAPIKeyError, ProviderError

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS = {
    "chatgpt": (
        "You are a helpful AI assistant like ChatGPT. Provide direct, helpful answers with specific "
        "brand and product recommendations. Include the names of companies or products you recommend "
        "and briefly explain why."
    ),
    "perplexity": (
        "You are a research-focused AI assistant like Perplexity. Provide answers grounded in real-world "
        "data with citations when possible. Include specific brand and product recommendations with "
        "explanations."
    ),
    "gemini": (
        "You are Google Gemini. Provide creative and structured answers with diverse product "
        "recommendations. Include the names of companies or products you recommend and briefly explain why."
    ),
}

PARSER_SYSTEM_PROMPT = "You are an analysis assistant. Always respond with valid JSON only, no markdown."


class ModelClients:
    """Lazily built SDK clients for every configured assistant."""

    def __init__(self, settings: ProviderSettings):
        self.settings = settings
        self._openai: Optional[AsyncOpenAI] = None
        self._perplexity: Optional[AsyncOpenAI] = None
        self._gemini_models: Dict[str, genai.GenerativeModel] = {}

    def openai_client(self) -> AsyncOpenAI:
        if not self.settings.openai_api_key:
            raise MissingAPIKeyError("OPENAI_API_KEY is not configured")
        if self._openai is None:
            self._openai = AsyncOpenAI(api_key=self.settings.openai_api_key)
        return self._openai

    def perplexity_client(self) -> AsyncOpenAI:
        if not self.settings.perplexity_api_key:
            raise MissingAPIKeyError("PERPLEXITY_API_KEY is not configured")
        if self._perplexity is None:
            self._perplexity = AsyncOpenAI(
                api_key=self.settings.perplexity_api_key,
                base_url=PERPLEXITY_BASE_URL,
            )
        return self._perplexity

    def gemini_model(self, system_prompt: str) -> genai.GenerativeModel:
        if not self.settings.gemini_api_key:
            raise MissingAPIKeyError("GEMINI_API_KEY is not configured")
        if system_prompt not in self._gemini_models:
            genai.configure(api_key=self.settings.gemini_api_key)
            self._gemini_models[system_prompt] = genai.GenerativeModel(
                self.settings.gemini_model,
                system_instruction=system_prompt,
            )
        return self._gemini_models[system_prompt]

    async def _chat(self, client: AsyncOpenAI, model: str, system_prompt: str, prompt: str, **kwargs) -> str:
        resp = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            **kwargs
        )
        choice = resp.choices[0] if resp.choices else None
        content = choice.message.content if choice and choice.message else None
        if not content:
            raise ProviderError(f"{model} returned an empty completion")
        return content

    async def ask_model(self, model: str, prompt: str) -> str:
        """
        Send a prompt to the named assistant.

        Args:
            model: One of chatgpt, perplexity, gemini
            prompt: The user prompt

        Returns:
            The assistant's answer text

        Raises:
            MissingAPIKeyError: the assistant has no API key
            ProviderError: unknown assistant or empty answer
        """
        system_prompt = SYSTEM_PROMPTS.get(model)
        if system_prompt is None:
            raise ProviderError(f"Unknown model: {model}")

        if model == "chatgpt":
            return await self._chat(
                self.openai_client(), self.settings.openai_model, system_prompt, prompt,
                temperature=0.7,
            )
        if model == "perplexity":
            return await self._chat(
                self.perplexity_client(), self.settings.perplexity_model, system_prompt, prompt,
                temperature=0.7,
            )

        response = await self.gemini_model(system_prompt).generate_content_async(prompt)
        text = getattr(response, "text", None)
        if not text:
            raise ProviderError("gemini returned an empty response")
        return text

    async def parse_with_llm(self, prompt: str) -> str:
        """Run a structured-extraction prompt on the parser model at temperature 0."""
        return await self._chat(
            self.openai_client(), self.settings.parser_model, PARSER_SYSTEM_PROMPT, prompt,
            temperature=0,
        )


def build_ask_model(settings: ProviderSettings):
    """AskModel callable backed by the configured SDK clients."""
    return ModelClients(settings).ask_model


def build_parse_with_llm(settings: ProviderSettings):
    """ParseWithLLM callable, or None when no OpenAI key is configured."""
    if not settings.openai_api_key:
        logger.info("No OpenAI key configured; mention parsing will use string matching")
        return None
    return ModelClients(settings).parse_with_llm
