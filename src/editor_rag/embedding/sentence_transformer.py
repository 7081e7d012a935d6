"""
Sentence Transformer Embedder for chunk and query text.

Runs locally, so the embedding pipeline's concurrency bound protects the
machine rather than a remote rate limit.
"""

import logging
import os
from typing import List, Optional

from sentence_transformers import SentenceTransformer

from ..core.embedder import Embedder

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder(Embedder):
    """
    SentenceTransformer-based implementation of Embedder.
    """

    def __init__(self,
                 model_name: str = "all-MiniLM-L6-v2",
                 device: Optional[str] = None,
                 cache_folder: Optional[str] = None):
        """
        Load the sentence transformer model

        Args:
            model_name: Name of the sentence transformer model
            device: 'cpu', 'cuda', 'mps', or None to auto-detect
            cache_folder: Folder to cache downloaded models
        """
        self.model_name = model_name
        self.cache_folder = cache_folder

        if os.environ.get('EDITOR_RAG_FORCE_CPU', '').lower() in ('1', 'true', 'yes'):
            logger.info("EDITOR_RAG_FORCE_CPU is set, using CPU")
            device = 'cpu'
        self.device = device

        logger.info(f"Loading sentence transformer model: {model_name} on device: {device or 'auto'}")
        try:
            self.model = SentenceTransformer(
                model_name,
                device=device,
                cache_folder=cache_folder
            )
        except Exception as e:
            logger.error(f"Failed to load model {model_name}: {e}")
            raise
        logger.info(f"Model loaded on {self.model.device}. Embedding dimension: {self.get_dimension()}")

    def generate(self, text: str) -> List[float]:
        """
        Embed a single text; empty text maps to the zero vector
        """
        if not text or not text.strip():
            return [0.0] * self.get_dimension()

        embedding = self.model.encode(text, convert_to_numpy=True, show_progress_bar=False)
        return embedding.tolist()

    def generate_batch(self, texts: List[str], batch_size: int = 32) -> List[List[float]]:
        """
        Embed a batch of texts, preserving order

        Empty texts are not sent to the model and come back as zero vectors.
        """
        if not texts:
            return []

        dimension = self.get_dimension()
        valid_indices = [i for i, text in enumerate(texts) if text and text.strip()]
        result = [[0.0] * dimension for _ in texts]
        if not valid_indices:
            return result

        embeddings = self.model.encode(
            [texts[i] for i in valid_indices],
            convert_to_numpy=True,
            batch_size=batch_size,
            show_progress_bar=False,
        )
        for position, index in enumerate(valid_indices):
            result[index] = embeddings[position].tolist()
        return result

    def get_dimension(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    def get_model_info(self) -> dict:
        return {
            "model_name": self.model_name,
            "dimension": self.get_dimension(),
            "device": str(self.model.device),
            "max_seq_length": getattr(self.model, 'max_seq_length', None)
        }
