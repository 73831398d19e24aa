"""Image generation tool."""

import logging
import os
from typing import Optional
from pydantic import BaseModel, Field

from .base import Tool

logger = logging.getLogger(__name__)


class GenerateImageInput(BaseModel):
    prompt: str = Field(
        ...,
        min_length=1,
        description="The detailed visual description of the image to generate. "
                    "Rewrite the user request to be descriptive, specifying style, "
                    "lighting, and composition."
    )


class GenerateImageTool(Tool):
    """Tool for generating marketing visuals."""

    name = "generateImage"
    description = """Generate an image using DALL-E 3.
Use this whenever the user explicitly asks to create, draw, or generate an
image. The prompt should be highly detailed and descriptive."""
    input_model = GenerateImageInput

    MODEL = "dall-e-3"
    SIZE = "1024x1024"

    def __init__(self, openai_api_key: Optional[str] = None, client=None):
        self.client = client
        if self.client is None:
            api_key = openai_api_key or os.environ.get("OPENAI_API_KEY")
            if api_key:
                from openai import OpenAI
                self.client = OpenAI(api_key=api_key)

    def execute(self, args: GenerateImageInput) -> dict:
        """Generate one image and return its URL."""
        if self.client is None:
            return {"error": "Image generation is not configured."}

        try:
            response = self.client.images.generate(
                model=self.MODEL,
                prompt=args.prompt,
                n=1,
                size=self.SIZE,
            )
        except Exception as e:
            logger.error(f"Image generation failed: {e}")
            return {"error": "Failed to generate image. Please try again."}

        return {
            "image_url": response.data[0].url,
            "prompt_used": args.prompt,
        }
