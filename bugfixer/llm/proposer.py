"""Patch proposers - turn source plus an error signal into candidate code"""

import logging
import os
from typing import Any, Dict, List, Optional, Protocol

from anthropic import Anthropic
from openai import OpenAI

from bugfixer.core.config_loader import FixConfig
from bugfixer.core.data_types import Proposal
from bugfixer.llm.prompts import SYSTEM_MESSAGE, build_bug_fix_prompt


logger = logging.getLogger(__name__)


class PatchProposer(Protocol):
    """Anything that can propose replacement source for a file"""

    def propose(
        self, source_text: str, filename: str, error_context: str, config: FixConfig
    ) -> Proposal: ...


class LLMPatchProposer:
    """Proposes patches through the OpenAI or Anthropic chat APIs"""

    def __init__(
        self,
        openai_client: Optional[OpenAI] = None,
        anthropic_client: Optional[Anthropic] = None,
    ):
        self._openai_client = openai_client
        self._anthropic_client = anthropic_client

    # ==================== Provider Client Getters ====================

    def _get_openai_client(self) -> OpenAI:
        if self._openai_client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            base_url = os.getenv("OPENAI_BASE_URL")
            self._openai_client = OpenAI(api_key=api_key, base_url=base_url)
        return self._openai_client

    def _get_anthropic_client(self) -> Anthropic:
        if self._anthropic_client is None:
            api_key = os.getenv("ANTHROPIC_API_KEY")
            self._anthropic_client = Anthropic(api_key=api_key)
        return self._anthropic_client

    # ==================== Main Proposal Method ====================

    def propose(
        self, source_text: str, filename: str, error_context: str, config: FixConfig
    ) -> Proposal:
        """
        Ask the configured provider for a fixed version of the file

        Args:
            source_text: Current file contents
            filename: File being fixed
            error_context: Error message or test output
            config: Resolved fix configuration (provider, model, limits)

        Returns:
            Proposal with the raw response text and token usage when reported

        Raises:
            ValueError: If the provider is unknown
        """
        prompt = build_bug_fix_prompt(source_text, filename, error_context, config.safety_level)
        messages = [{"role": "user", "content": prompt}]
        logger.debug(f"Requesting patch for {filename} from {config.provider}/{config.model}")

        if config.provider == "openai":
            return self._propose_openai(messages, config)
        elif config.provider == "anthropic":
            return self._propose_anthropic(messages, config)
        else:
            raise ValueError(f"Unknown provider: {config.provider}")

    # ==================== Provider-Specific Generation ====================

    def _propose_openai(self, messages: List[Dict[str, str]], config: FixConfig) -> Proposal:
        client = self._get_openai_client()
        response = client.chat.completions.create(
            model=config.model,
            messages=[{"role": "system", "content": SYSTEM_MESSAGE}] + messages,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout=config.llm_timeout,
        )
        text = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        return Proposal(
            text=text,
            input_tokens=_usage_value(usage, "prompt_tokens"),
            output_tokens=_usage_value(usage, "completion_tokens"),
        )

    def _propose_anthropic(self, messages: List[Dict[str, str]], config: FixConfig) -> Proposal:
        client = self._get_anthropic_client()
        response = client.messages.create(
            model=config.model,
            max_tokens=config.max_tokens,
            messages=messages,
            temperature=config.temperature,
            timeout=config.llm_timeout,
            system=SYSTEM_MESSAGE,
        )
        text = ""
        for block in response.content:
            if hasattr(block, "text"):
                text = block.text
                break
        usage = getattr(response, "usage", None)
        return Proposal(
            text=text,
            input_tokens=_usage_value(usage, "input_tokens"),
            output_tokens=_usage_value(usage, "output_tokens"),
        )


def _usage_value(usage: Any, name: str) -> Optional[int]:
    value = getattr(usage, name, None) if usage is not None else None
    return value if isinstance(value, int) else None
