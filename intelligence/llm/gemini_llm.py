"""
Google Gemini LLM
"""
from typing import List, Optional
import logging

from .base import BaseLLM, Message, MessageRole, LLMResponse


logger = logging.getLogger(__name__)


class GeminiLLM(BaseLLM):
    """
    Google Gemini implementation on top of ``google-generativeai``.
    """

    def __init__(
        self,
        model: str = "gemini-2.5-pro",
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 8192,
        timeout: float = 120.0,
        top_p: Optional[float] = None,
        top_k: Optional[int] = None,
    ):
        super().__init__(model, temperature, max_tokens, timeout)
        self.api_key = api_key
        self.top_p = top_p
        self.top_k = top_k

    @property
    def provider(self) -> str:
        return "gemini"

    def _convert_messages(self, messages: List[Message]) -> tuple:
        """
        Split messages into Gemini's shape.

        Returns:
            (system_instruction, history, last_message)
        """
        system_instruction = None
        history = []
        last_message = None

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_instruction = msg.content
            elif msg.role == MessageRole.USER:
                last_message = msg.content
            elif msg.role == MessageRole.ASSISTANT:
                if last_message:
                    history.append({"role": "user", "parts": [last_message]})
                    last_message = None
                history.append({"role": "model", "parts": [msg.content]})

        return system_instruction, history, last_message

    def _generation_config(self, **kwargs) -> dict:
        config = {
            "temperature": kwargs.get("temperature", self.temperature),
            "max_output_tokens": kwargs.get("max_tokens", self.max_tokens),
        }
        if self.top_p is not None:
            config["top_p"] = self.top_p
        if self.top_k is not None:
            config["top_k"] = self.top_k
        return config

    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        """Generate a response asynchronously"""
        import google.generativeai as genai

        genai.configure(api_key=self.api_key)

        system_instruction, history, last_message = self._convert_messages(messages)

        model = genai.GenerativeModel(
            model_name=self.model,
            generation_config=self._generation_config(**kwargs),
            system_instruction=system_instruction,
        )

        chat = model.start_chat(history=history)
        response = await chat.send_message_async(
            last_message or "",
            request_options={"timeout": self.timeout},
        )

        content = response.text if response.text else ""

        usage = {}
        if hasattr(response, "usage_metadata") and response.usage_metadata:
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count,
                "completion_tokens": response.usage_metadata.candidates_token_count,
                "total_tokens": response.usage_metadata.total_token_count,
            }

        return LLMResponse(
            content=content,
            model=self.model,
            usage=usage,
            finish_reason=response.candidates[0].finish_reason.name if response.candidates else None,
            raw_response=response,
        )
