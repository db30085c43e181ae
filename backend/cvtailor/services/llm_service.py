"""
LLM Service with Multi-Provider Fallback (OpenAI → Gemini)

Architecture:
- Primary: OpenAI (gpt-4o)
- Fallback: Google Gemini
- Uses LangChain for provider abstraction

A call makes one attempt per provider unless LLM_MAX_ATTEMPTS says
otherwise. Each call is tracked in MLflow and Prometheus.
"""
import logging
import time
from contextlib import nullcontext
from enum import Enum
from typing import Any, Dict, Optional

import mlflow
import tiktoken
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from tenacity import Retrying, before_sleep_log, stop_after_attempt, wait_exponential

from backend.cvtailor.config import get_settings
from backend.cvtailor.utils.prometheus_metrics import track_llm_call

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Available LLM providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


class LLMServiceError(RuntimeError):
    """Raised when every configured provider failed."""


def content_text(content: Any) -> str:
    """Flatten LangChain message content (a string or a list of blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )
    return "" if content is None else str(content)


class LLMService:
    """
    Multi-provider LLM service with automatic fallback.

    Flow:
    1. Try OpenAI (primary)
    2. If OpenAI fails → fallback to Gemini
    3. If both fail → raise LLMServiceError
    """

    def __init__(self):
        self.settings = get_settings()

        self.openai_available = self._init_openai()
        self.gemini_available = self._init_gemini()

        if not self.openai_available and not self.gemini_available:
            raise RuntimeError(
                "No LLM providers configured. Set OPENAI_API_KEY or GEMINI_API_KEY"
            )

        self._encoding = None
        self._encoding_failed = False

        if self.settings.mlflow_enabled:
            mlflow.set_tracking_uri(self.settings.mlflow_tracking_uri)
            mlflow.set_experiment(self.settings.experiment_name)

        logger.info(
            "LLM Service initialized: OpenAI=%s, Gemini=%s",
            self.openai_available,
            self.gemini_available,
        )

    def _init_openai(self) -> bool:
        """Initialize OpenAI provider if API key available."""
        if self.settings.openai_api_key is None:
            logger.warning("OPENAI_API_KEY not set - OpenAI unavailable")
            return False

        try:
            self.openai_client = ChatOpenAI(
                model=self.settings.openai_model,
                api_key=self.settings.openai_api_key.get_secret_value(),
                temperature=0.7,  # Default, overridden per call
                timeout=self.settings.timeout_seconds,
                max_retries=0,  # We handle retries ourselves
            )
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI: {e}")
            return False

        logger.info(f"OpenAI initialized: {self.settings.openai_model}")
        return True

    def _init_gemini(self) -> bool:
        """Initialize Gemini provider if API key available."""
        if self.settings.gemini_api_key is None:
            logger.warning("GEMINI_API_KEY not set - Gemini unavailable")
            return False

        try:
            self.gemini_client = ChatGoogleGenerativeAI(
                model=self.settings.gemini_model,
                google_api_key=self.settings.gemini_api_key.get_secret_value(),
                temperature=0.7,  # Default, overridden per call
                timeout=self.settings.timeout_seconds,
            )
        except Exception as e:
            logger.error(f"Failed to initialize Gemini: {e}")
            return False

        logger.info(f"Gemini initialized: {self.settings.gemini_model}")
        return True

    def count_tokens(self, text: Any) -> int:
        """
        Estimate token count for cost tracking.
        Note: Approximation for both OpenAI and Gemini.
        The encoding is loaded once; after a failed load the word estimate is used.
        """
        text = content_text(text)
        if self._encoding is None and not self._encoding_failed:
            try:
                self._encoding = tiktoken.encoding_for_model("gpt-4")
            except Exception as e:
                logger.warning(f"Token encoding unavailable: {e}. Using word estimate.")
                self._encoding_failed = True

        if self._encoding is not None:
            try:
                return len(self._encoding.encode(text))
            except Exception as e:
                logger.warning(f"Token counting failed: {e}. Using word estimate.")
        return int(len(text.split()) * 1.3)

    def _call_openai(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        response_format: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Call OpenAI via LangChain. response_format enables JSON mode."""
        if response_format and response_format.get("type") == "json_object":
            model_kwargs = {"response_format": response_format}
        else:
            model_kwargs = {}

        # per-call copy; the shared client may be in use by another worker thread
        client = self.openai_client.model_copy(update={
            "temperature": temperature,
            "max_tokens": max_tokens,
            "model_kwargs": model_kwargs,
        })

        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt)
        ]

        with track_llm_call(provider=LLMProvider.OPENAI.value, model=self.settings.openai_model):
            response = client.invoke(messages)

        return {
            "content": response.content,
            "provider": LLMProvider.OPENAI,
            "model": self.settings.openai_model
        }

    def _call_gemini(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        response_format: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Call Gemini via LangChain.

        Gemini has no JSON mode switch here, so JSON output is requested
        through the system prompt.
        """
        client = self.gemini_client.model_copy(update={
            "temperature": temperature,
            "max_output_tokens": max_tokens,
        })

        if response_format and response_format.get("type") == "json_object":
            system_prompt += "\n\nIMPORTANT: You MUST respond with valid JSON only. No additional text before or after the JSON."

        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt)
        ]

        with track_llm_call(provider=LLMProvider.GEMINI.value, model=self.settings.gemini_model):
            response = client.invoke(messages)

        return {
            "content": response.content,
            "provider": LLMProvider.GEMINI,
            "model": self.settings.gemini_model
        }

    def _call_with_fallback(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        response_format: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        error_chain = []

        if self.openai_available:
            try:
                logger.debug("Attempting OpenAI...")
                result = self._call_openai(
                    system_prompt, user_prompt, temperature, max_tokens, response_format
                )
                logger.info("OpenAI succeeded")
                return result
            except Exception as e:
                error_msg = f"OpenAI failed: {e}"
                logger.warning(error_msg)
                error_chain.append(error_msg)

        if self.gemini_available:
            try:
                if error_chain:
                    logger.warning("Falling back to Gemini...")
                result = self._call_gemini(
                    system_prompt, user_prompt, temperature, max_tokens, response_format
                )
                logger.info("Gemini succeeded")
                result["errors_before_success"] = error_chain
                return result
            except Exception as e:
                error_msg = f"Gemini failed: {e}"
                logger.error(error_msg)
                error_chain.append(error_msg)

        raise LLMServiceError(f"All providers failed: {'; '.join(error_chain)}")

    def generate_response(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        response_format: Optional[Dict[str, Any]] = None,
        run_name: str = "llm_generation",
    ) -> Dict[str, Any]:
        """
        Generate LLM response with automatic fallback.

        Args:
            system_prompt: System/instruction prompt
            user_prompt: User input
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens to generate
            response_format: Optional format spec (e.g., {"type": "json_object"})
            run_name: MLflow run name, usually the prompt template name

        Returns:
            Dict with content, usage, model and provider.

        Raises:
            LLMServiceError: if no provider produced a response
        """
        start_time = time.time()
        input_tokens = self.count_tokens(system_prompt + user_prompt)

        tracking = self.settings.mlflow_enabled
        run = mlflow.start_run(nested=True, run_name=run_name) if tracking else nullcontext()

        with run:
            result = None
            for attempt in Retrying(
                stop=stop_after_attempt(max(1, self.settings.llm_max_attempts)),
                wait=wait_exponential(multiplier=1, min=4, max=10),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    result = self._call_with_fallback(
                        system_prompt, user_prompt, temperature, max_tokens, response_format
                    )

            result_text = result["content"]
            output_tokens = self.count_tokens(result_text)
            total_tokens = input_tokens + output_tokens
            duration = time.time() - start_time

            if tracking:
                mlflow.log_param("provider", result["provider"].value)
                mlflow.log_param("model", result["model"])
                mlflow.log_param("temperature", temperature)
                mlflow.log_param("input_tokens", input_tokens)
                mlflow.log_metric("duration_seconds", duration)
                mlflow.log_metric("output_tokens", output_tokens)
                mlflow.log_metric("total_tokens", total_tokens)
                if result.get("errors_before_success"):
                    mlflow.log_param("fallback_used", True)

            return {
                "content": result_text,
                "usage": {
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "total_tokens": total_tokens
                },
                "model": result["model"],
                "provider": result["provider"].value
            }


def get_llm_service() -> "LLMService":
    """Factory function to get LLM service instance."""
    return LLMService()
