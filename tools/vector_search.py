"""Vector similarity search over a local passage index."""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import numpy as np
from pydantic import BaseModel, Field

from .base import Tool

logger = logging.getLogger(__name__)


class VectorSearchInput(BaseModel):
    query: str = Field(..., min_length=1, description="What to look up in the knowledge base")


class VectorIndex:
    """Passages with precomputed, L2-normalized embeddings."""

    def __init__(self, passages: List[dict], embeddings: np.ndarray):
        self.passages = passages
        norms = np.linalg.norm(embeddings, axis=1, keepdims=True) if len(embeddings) else 1.0
        self.embeddings = embeddings / np.where(norms == 0, 1.0, norms)

    @classmethod
    def load(cls, path: str) -> "VectorIndex":
        """
        Load an index file of the form
        {"passages": [{"text": ..., "source": ..., "embedding": [...]}]}.
        """
        with open(path, "r") as f:
            data = json.load(f)

        passages = []
        vectors = []
        for item in data.get("passages", []):
            passages.append({"text": item["text"], "source": item.get("source")})
            vectors.append(item["embedding"])

        logger.info(f"Loaded vector index with {len(passages)} passages from {path}")
        return cls(passages, np.array(vectors, dtype=np.float32))

    def search(self, query_embedding: np.ndarray, top_k: int) -> List[dict]:
        """Return the top_k passages by cosine similarity."""
        if not self.passages:
            return []

        query = query_embedding / (np.linalg.norm(query_embedding) or 1.0)
        scores = self.embeddings @ query
        best = np.argsort(-scores)[:top_k]
        return [
            {**self.passages[i], "score": round(float(scores[i]), 4)}
            for i in best
        ]


class VectorDatabaseSearchTool(Tool):
    """Tool for looking up passages in the marketing knowledge base."""

    name = "vectorDatabaseSearch"
    description = """Search the internal marketing knowledge base.
Use this for playbooks, templates and best practices before answering from
memory. Returns matching passages with similarity scores."""
    input_model = VectorSearchInput

    EMBEDDING_MODEL = "text-embedding-3-small"

    def __init__(
        self,
        index_path: str,
        openai_api_key: Optional[str] = None,
        top_k: int = 3,
        client=None
    ):
        """
        Initialize vector search tool.

        Args:
            index_path: Path to the JSON passage index
            openai_api_key: OpenAI API key for query embeddings
            top_k: Number of passages to return
            client: Optional preconfigured OpenAI client
        """
        self.index_path = index_path
        self.top_k = top_k
        self.client = client
        self._index: Optional[VectorIndex] = None

        if self.client is None:
            api_key = openai_api_key or os.environ.get("OPENAI_API_KEY")
            if api_key:
                from openai import OpenAI
                self.client = OpenAI(api_key=api_key)
            else:
                logger.warning("No OpenAI API key provided. Vector search will be unavailable.")

    @property
    def index(self) -> VectorIndex:
        if self._index is None:
            if not Path(self.index_path).exists():
                raise RuntimeError(f"Knowledge base index not found: {self.index_path}")
            self._index = VectorIndex.load(self.index_path)
        return self._index

    def _embed(self, text: str) -> np.ndarray:
        if self.client is None:
            raise RuntimeError("Vector search is not configured (missing OpenAI API key)")
        response = self.client.embeddings.create(model=self.EMBEDDING_MODEL, input=[text])
        return np.array(response.data[0].embedding, dtype=np.float32)

    def execute(self, args: VectorSearchInput) -> List[dict]:
        """Search the knowledge base."""
        results = self.index.search(self._embed(args.query), self.top_k)
        logger.info(f"Vector search for '{args.query}' returned {len(results)} passages")
        return results
