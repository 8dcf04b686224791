"""
LLM Provider Factory
Provides a unified interface for the LLM providers (OpenAI, Mistral) used for
phrase generation, word explanations, answer verification and speech.
The provider is chosen via the LLM_PROVIDER environment variable.
"""

import os
import json
import logging
from typing import Dict, List, Optional, Any, Type
from abc import ABC, abstractmethod
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


def strip_markdown_code_fences(content: str) -> str:
    """
    Strip markdown code fences from an LLM response.

    Mistral often wraps JSON in ```json ... ``` fences; OpenAI returns raw JSON.

    Examples:
        >>> strip_markdown_code_fences('```json\\n{"key": "value"}\\n```')
        '{"key": "value"}'
    """
    content = (content or "").strip()

    if content.startswith("```"):
        lines = content.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        content = "\n".join(lines).strip()

    return content


class LLMProvider(ABC):
    """Abstract base class for LLM providers"""

    @abstractmethod
    def create_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        response_format: Optional[Dict] = None,
        timeout: float = 30.0,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Create a chat completion using the provider's API.

        Returns a normalized response dictionary with:
        - content: str (the response text)
        - model: str (model used)
        - usage: dict (token usage stats)
        - raw_response: original API response object
        """
        pass

    @abstractmethod
    def create_structured_completion(
        self,
        messages: List[Dict[str, str]],
        response_model: Type[BaseModel],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout: float = 30.0,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Create a structured completion parsed into a Pydantic model.

        Uses the provider's .parse() method with automatic fallback to JSON mode
        plus manual parsing if structured output fails.

        Returns:
            Dict containing:
            - parsed_object: Pydantic model instance
            - raw_content: Original response text
            - model: Model name used
            - usage: Token usage dict
            - raw_response: Original API response object

        Raises:
            RuntimeError: If both structured output and the fallback fail
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return provider name ('openai', 'mistral')"""
        pass

    def _fallback_structured_completion(
        self,
        messages: List[Dict[str, str]],
        response_model: Type[BaseModel],
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        **kwargs
    ) -> Dict[str, Any]:
        """JSON-mode completion parsed manually into response_model"""
        try:
            response = self.create_chat_completion(
                messages=messages,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
                timeout=timeout,
                **kwargs
            )

            content = strip_markdown_code_fences(response["content"])
            parsed_object = response_model(**json.loads(content))

            logger.info(f"Fallback parsing successful: {response['model']}")
            return {
                "parsed_object": parsed_object,
                "raw_content": content,
                "model": response["model"],
                "usage": response["usage"],
                "raw_response": response.get("raw_response")
            }

        except json.JSONDecodeError as json_err:
            logger.error(f"JSON parsing failed in fallback: {json_err}")
            raise RuntimeError(f"Failed to parse LLM response as JSON: {json_err}")
        except ValidationError as validation_err:
            logger.error(f"LLM response did not match {response_model.__name__}: {validation_err}")
            raise RuntimeError(f"LLM response did not match expected format: {validation_err}")
        except Exception as fallback_err:
            logger.error(f"Fallback completion failed: {fallback_err}")
            raise RuntimeError(f"Structured completion failed and fallback also failed: {fallback_err}")


class OpenAIProvider(LLMProvider):
    """OpenAI API provider implementation"""

    def __init__(self, api_key: Optional[str] = None):
        """Initialize OpenAI provider with API key"""
        from openai import OpenAI

        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables")

        self.client = OpenAI(api_key=self.api_key)
        logger.info("Initialized OpenAI provider")

    def create_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        response_format: Optional[Dict] = None,
        timeout: float = 30.0,
        **kwargs
    ) -> Dict[str, Any]:
        """Create chat completion using OpenAI API"""
        api_params = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": timeout,
            **kwargs
        }

        if response_format:
            api_params["response_format"] = response_format

        response = self.client.chat.completions.create(**api_params)

        return {
            "content": response.choices[0].message.content,
            "model": response.model,
            "usage": {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            },
            "raw_response": response
        }

    def get_provider_name(self) -> str:
        return "openai"

    def create_structured_completion(
        self,
        messages: List[Dict[str, str]],
        response_model: Type[BaseModel],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout: float = 30.0,
        **kwargs
    ) -> Dict[str, Any]:
        """Create structured completion using OpenAI's .parse() method"""
        try:
            logger.debug(f"Attempting structured completion with OpenAI model {model}")

            response = self.client.beta.chat.completions.parse(
                model=model,
                messages=messages,
                response_format=response_model,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
                **kwargs
            )

            parsed_object = response.choices[0].message.parsed
            if parsed_object is None:
                raise ValueError("Model returned no parsed content (refusal or empty response)")

            logger.info(f"Structured completion successful: {response.model}, tokens={response.usage.total_tokens}")
            return {
                "parsed_object": parsed_object,
                "raw_content": response.choices[0].message.content,
                "model": response.model,
                "usage": {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                },
                "raw_response": response
            }

        except Exception as e:
            logger.warning(f"Structured output failed, falling back to manual JSON parsing: {e}")
            return self._fallback_structured_completion(
                messages, response_model, model, temperature, max_tokens, timeout, **kwargs
            )

    def create_speech(self, text: str, model: str, voice: str) -> bytes:
        """Synthesize MP3 speech; the spoken language is detected from the text"""
        response = self.client.audio.speech.create(
            model=model,
            voice=voice,
            input=text,
            response_format="mp3"
        )
        return response.content


class MistralProvider(LLMProvider):
    """Mistral AI provider implementation"""

    # Mistral supports JSON mode but not full JSON schema
    JSON_MODE_MODELS = {
        "mistral-large-latest",
        "mistral-small-latest",
        "mistral-medium-latest",
    }

    def __init__(self, api_key: Optional[str] = None):
        """Initialize Mistral provider with API key"""
        from mistralai import Mistral

        self.api_key = api_key or os.getenv("MISTRAL_API_KEY")
        if not self.api_key:
            raise ValueError("MISTRAL_API_KEY not found in environment variables")

        self.client = Mistral(api_key=self.api_key)
        logger.info("Initialized Mistral provider")

    def create_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        response_format: Optional[Dict] = None,
        timeout: float = 30.0,
        **kwargs
    ) -> Dict[str, Any]:
        """Create chat completion using Mistral API"""
        api_params = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            **kwargs
        }

        if response_format and response_format.get("type") in ("json_object", "json_schema"):
            if model in self.JSON_MODE_MODELS:
                api_params["response_format"] = {"type": "json_object"}
            else:
                logger.warning(f"Model {model} may not support JSON mode")

        response = self.client.chat.complete(**api_params)

        return {
            "content": response.choices[0].message.content,
            "model": response.model,
            "usage": {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            },
            "raw_response": response
        }

    def get_provider_name(self) -> str:
        return "mistral"

    def create_structured_completion(
        self,
        messages: List[Dict[str, str]],
        response_model: Type[BaseModel],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout: float = 30.0,
        **kwargs
    ) -> Dict[str, Any]:
        """Create structured completion using Mistral's chat.parse() method"""
        try:
            logger.debug(f"Attempting structured completion with Mistral model {model}")

            response = self.client.chat.parse(
                model=model,
                messages=messages,
                response_format=response_model,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )

            parsed_object = response.choices[0].message.parsed
            if parsed_object is None:
                raise ValueError("Model returned no parsed content")

            logger.info(f"Structured completion successful: {response.model}, tokens={response.usage.total_tokens}")
            return {
                "parsed_object": parsed_object,
                "raw_content": response.choices[0].message.content,
                "model": response.model,
                "usage": {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                },
                "raw_response": response
            }

        except Exception as e:
            logger.warning(f"Structured output failed, falling back to manual JSON parsing: {e}")
            return self._fallback_structured_completion(
                messages, response_model, model, temperature, max_tokens, timeout, **kwargs
            )


class LLMProviderFactory:
    """Factory class for creating LLM provider instances"""

    DEFAULT_MODELS = {
        "openai": "gpt-4o-mini",
        "mistral": "mistral-small-latest",
    }

    # Environment variables overriding the default model per provider
    MODEL_ENV_VARS = {
        "openai": "OPENAI_MODEL",
        "mistral": "MISTRAL_MODEL",
    }

    @staticmethod
    def _resolve_provider_name(provider_name: Optional[str]) -> str:
        if provider_name is None:
            return os.getenv("LLM_PROVIDER", "openai").lower()
        return provider_name.lower()

    @staticmethod
    def create_provider(provider_name: Optional[str] = None) -> LLMProvider:
        """
        Create an LLM provider instance based on configuration.

        Args:
            provider_name: Provider to use ("openai", "mistral").
                         If None, reads from LLM_PROVIDER env var (default: "openai")

        Raises:
            ValueError: If provider is not supported or API key is missing
        """
        provider_name = LLMProviderFactory._resolve_provider_name(provider_name)
        logger.info(f"Creating LLM provider: {provider_name}")

        if provider_name == "openai":
            return OpenAIProvider()
        elif provider_name == "mistral":
            return MistralProvider()
        else:
            raise ValueError(
                f"Unsupported LLM provider: {provider_name}. "
                f"Supported providers: openai, mistral"
            )

    @staticmethod
    def get_default_model(provider_name: Optional[str] = None) -> str:
        """Default model for a provider, overridable with OPENAI_MODEL / MISTRAL_MODEL"""
        provider_name = LLMProviderFactory._resolve_provider_name(provider_name)

        env_var = LLMProviderFactory.MODEL_ENV_VARS.get(provider_name)
        if env_var and os.getenv(env_var):
            return os.getenv(env_var)

        return LLMProviderFactory.DEFAULT_MODELS.get(provider_name, "gpt-4o-mini")


def get_llm_client(provider_name: Optional[str] = None) -> LLMProvider:
    """
    Get an LLM provider client instance.

    Convenience wrapper around LLMProviderFactory.create_provider() for service modules.
    """
    return LLMProviderFactory.create_provider(provider_name)
