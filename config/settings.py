"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel


DEFAULT_DENIAL_MESSAGE = "Your message violates our guidelines. I can't answer that."

DEFAULT_SYSTEM_PROMPT = """You are MyAI3, an expert Digital Marketing Consultant for Small Businesses and Solopreneurs.
Your goal is to help users grow their business, increase sales, and build their brand online.

## Your Capabilities
1. Social Media Strategy: specific content calendars for IG, LinkedIn and Facebook.
2. Local SEO: optimizing Google Business Profiles for more foot traffic.
3. Paid Ads on a Budget: effective Meta/Google ad campaigns for small budgets.
4. Email & WhatsApp Marketing: scripts that convert leads into customers.
5. Copywriting: captions, ad hooks and website text that sells.

## Rules
- Stay in lane: politely pivot questions unrelated to business back to marketing.
- Be specific: give concrete ideas, never generic advice like "post more often".
- Use **bold** for key terms and Markdown tables for calendars and plans.
- Keep answers under 200 words unless asked for a full plan.
- End every response with a call to action or a question."""


class Settings(BaseModel):
    """Application configuration settings."""

    ai_name: str = "MyAI3"
    welcome_message: str = (
        "Hi! I'm MyAI3, your digital marketing consultant. "
        "Tell me about your business and I'll help you grow it."
    )
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" or "anthropic"
    llm_model: Optional[str] = None
    reasoning_effort: str = "low"
    send_reasoning: bool = True

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    exa_api_key: Optional[str] = None

    # Turn settings
    max_steps: int = 10
    sequential_tool_calls: bool = True

    # Moderation
    moderation_enabled: bool = True
    moderation_model: str = "omni-moderation-latest"
    denial_message: str = DEFAULT_DENIAL_MESSAGE

    # Tools
    search_results: int = 5
    vector_index_path: str = "data/vector_index.json"
    vector_top_k: int = 3
    image_generation_enabled: bool = False

    # Persistence
    db_path: str = "data/chat.db"
    storage_key: str = "chat-messages"
    max_message_chars: int = 2000

    def __init__(self, **data):
        # Auto-load API keys from environment if not provided
        if "openai_api_key" not in data or data["openai_api_key"] is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if "anthropic_api_key" not in data or data["anthropic_api_key"] is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        if "exa_api_key" not in data or data["exa_api_key"] is None:
            data["exa_api_key"] = os.environ.get("EXA_API_KEY")

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None
