"""Sentence-transformers model cache - Implementation of EmbeddingProviderPort.

Holds at most one loaded model per process and shares it across all
concurrent callers. Model artifacts are persisted under
``<cache_dir>/<model name with "/" replaced by "__">`` so restarts load from
disk instead of downloading again.

Architecture: Hexagonal - Infrastructure adapter implementing domain port
"""

import asyncio
import math
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ...domain.embedding import (
    EmbeddingInferenceError,
    EmbeddingProviderPort,
    ModelUnavailableError,
)
from ...observability.logging_config import get_logger
from ...observability.metrics import embedding_model_load_seconds, embedding_model_loaded
from ...services.embedding.text_generator import truncate_text_for_embedding

logger = get_logger(__name__)

# Files written by SentenceTransformer.save(); all must exist for a cache hit
REQUIRED_MODEL_FILES = (
    "modules.json",
    "config.json",
    "config_sentence_transformers.json",
)

# (model_name, model_dir, cached) -> loaded model exposing .encode()
ModelLoader = Callable[[str, Path, bool], Any]


def model_dir_for(cache_dir: Path, model_name: str) -> Path:
    return cache_dir / model_name.replace("/", "__")


def load_sentence_transformer(model_name: str, model_dir: Path, cached: bool) -> Any:
    """Load a SentenceTransformer, from disk when cached, otherwise from the hub.

    A cache hit never touches the network; if the local copy cannot be
    loaded the error propagates. A fresh download goes through a temporary
    hub folder that is removed once the model is saved to ``model_dir``.

    Runs in a worker thread; blocking I/O is fine here.
    """
    from sentence_transformers import SentenceTransformer

    if cached:
        return SentenceTransformer(str(model_dir), local_files_only=True)

    model_dir.parent.mkdir(parents=True, exist_ok=True)
    hub_dir = tempfile.mkdtemp(prefix=".hub-", dir=model_dir.parent)
    try:
        model = SentenceTransformer(model_name, cache_folder=hub_dir)
        model_dir.mkdir(parents=True, exist_ok=True)
        model.save(str(model_dir))
    finally:
        shutil.rmtree(hub_dir, ignore_errors=True)
    return model


class EmbeddingModelCache(EmbeddingProviderPort):
    """Process-wide, lazily loaded sentence-transformers model.

    Loading is single-flight: the first caller starts one load task and every
    concurrent caller awaits that same task. A caller that gives up (timeout
    or cancellation) does not cancel the load for the others. A failed load
    leaves the cache unloaded so the next call retries.

    Example Usage:
        cache = EmbeddingModelCache("sentence-transformers/all-MiniLM-L6-v2", "models")
        await cache.preload()
        vector = await cache.embed("wireless headphones")
    """

    def __init__(
        self,
        model_name: str,
        cache_dir: str,
        dimension: int = 384,
        max_text_length: int = 512,
        loader: Optional[ModelLoader] = None,
    ):
        self.model_name = model_name
        self.cache_dir = Path(cache_dir)
        self.model_dir = model_dir_for(self.cache_dir, model_name)
        self.max_text_length = max_text_length
        self._dimension = dimension
        self._loader = loader or load_sentence_transformer
        self._model: Optional[Any] = None
        self._load_task: Optional[asyncio.Task] = None
        self._last_error: Optional[str] = None
        self._load_duration_ms: Optional[int] = None

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def is_loading(self) -> bool:
        return self._load_task is not None and not self._load_task.done()

    def is_cached(self) -> bool:
        """True if every required artifact exists on disk."""
        try:
            return all((self.model_dir / name).is_file() for name in REQUIRED_MODEL_FILES)
        except OSError as e:
            logger.warning(f"Could not inspect model cache {self.model_dir}: {e}")
            return False

    def get_cache_status(self) -> Dict[str, Any]:
        return {
            "model_name": self.model_name,
            "cache_dir": str(self.cache_dir),
            "model_dir": str(self.model_dir),
            "is_cached": self.is_cached(),
            "is_loaded": self.is_loaded,
            "is_loading": self.is_loading,
            "dimension": self._dimension,
            "load_duration_ms": self._load_duration_ms,
            "last_error": self._last_error,
        }

    async def preload(self) -> None:
        await self._get_model()

    async def embed(self, text: str) -> List[float]:
        cleaned = truncate_text_for_embedding(text or "", self.max_text_length)
        if not cleaned:
            raise ValueError("Text cannot be empty")

        model = await self._get_model()
        return await asyncio.to_thread(self._encode, model, cleaned)

    async def _get_model(self) -> Any:
        if self._model is not None:
            return self._model

        # Check-and-set without an intervening await keeps this single-flight
        task = self._load_task
        if task is None:
            task = asyncio.get_running_loop().create_task(self._load())
            self._load_task = task
        else:
            logger.info("Embedding model is loading, waiting for the in-flight load")

        return await asyncio.shield(task)

    async def _load(self) -> Any:
        cached = self.is_cached()
        source = "cache" if cached else "download"
        if cached:
            logger.info(f"Loading embedding model {self.model_name} from {self.model_dir}")
        else:
            logger.info(f"Embedding model {self.model_name} not cached, downloading (first run)")

        start = time.perf_counter()
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            model = await asyncio.to_thread(self._loader, self.model_name, self.model_dir, cached)
        except Exception as e:
            self._last_error = str(e)
            embedding_model_loaded.set(0)
            logger.error(f"Failed to load embedding model {self.model_name}: {e}", exc_info=True)
            raise ModelUnavailableError(f"Embedding model {self.model_name} unavailable: {e}") from e
        finally:
            self._load_task = None

        elapsed = time.perf_counter() - start
        self._model = model
        self._last_error = None
        self._load_duration_ms = int(elapsed * 1000)
        embedding_model_load_seconds.labels(source=source).observe(elapsed)
        embedding_model_loaded.set(1)
        logger.info(
            f"Embedding model ready ({source}, {self._load_duration_ms}ms)",
            extra={"duration_ms": self._load_duration_ms},
        )
        return model

    def _encode(self, model: Any, text: str) -> List[float]:
        try:
            raw = model.encode(text, normalize_embeddings=True, convert_to_numpy=True)
        except Exception as e:
            raise EmbeddingInferenceError(f"Model failed to encode text: {e}") from e

        vector = [float(x) for x in raw]
        if len(vector) != self._dimension:
            raise EmbeddingInferenceError(
                f"Expected {self._dimension}-dimensional embedding, got {len(vector)}"
            )
        if not all(math.isfinite(x) for x in vector):
            raise EmbeddingInferenceError("Embedding contains non-finite values")
        return vector
