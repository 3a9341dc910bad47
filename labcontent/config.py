import os
import sys
from pathlib import Path

from loguru import logger


class Settings:
    def __init__(self):
        self.content_dir = Path(os.getenv("CONTENT_DIR", "content"))
        self.scraped_dir = Path(os.getenv("SCRAPED_DIR", "scraped"))
        self.batches_dir = Path(os.getenv("BATCHES_DIR", str(self.scraped_dir / "batches")))
        self.parsed_dir = Path(os.getenv("PARSED_DIR", str(self.scraped_dir / "parsed")))
        self.embeddings_path = Path(os.getenv("EMBEDDINGS_PATH", "public/embeddings.json"))
        self.lookup_cache_path = Path(os.getenv("LOOKUP_CACHE_PATH", str(self.parsed_dir / "crossref-cache.json")))
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file = os.getenv("LOG_FILE")

        self.crossref_base_url = "https://api.crossref.org"
        self.openalex_base_url = "https://api.openalex.org"
        self.semantic_scholar_base_url = "https://api.semanticscholar.org/graph/v1"
        self.pubmed_base_url = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
        self.contact_email = os.getenv("CONTACT_EMAIL", "lab@example.com")
        self.semantic_scholar_api_key = os.getenv("SEMANTIC_SCHOLAR_API_KEY")

        self.ollama_host = os.getenv("OLLAMA_HOST", "http://localhost:11434")
        self.parse_model = os.getenv("OLLAMA_PARSE_MODEL", "glm4:9b")
        self.embedding_model = os.getenv("OLLAMA_EMBEDDING_MODEL", "qwen3-embedding:8b")
        self.embedding_dim = int(os.getenv("EMBEDDING_DIM", "1024"))

        # Request pacing (seconds between consecutive calls)
        self.api_timeout = float(os.getenv("API_TIMEOUT", "30"))
        self.crossref_metadata_delay = float(os.getenv("CROSSREF_METADATA_DELAY", "0.1"))
        self.search_delay = float(os.getenv("SEARCH_DELAY", "1.0"))
        self.abstract_delay = float(os.getenv("ABSTRACT_DELAY", "1.0"))
        self.embedding_delay = float(os.getenv("EMBEDDING_DELAY", "0.05"))

        self.title_key_length = int(os.getenv("TITLE_KEY_LENGTH", "30"))

    @property
    def publications_dir(self) -> Path:
        return self.content_dir / "publications"

    @property
    def user_agent(self) -> str:
        return f"LabContentPipeline/1.0 (mailto:{self.contact_email})"


settings = Settings()


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(level: str = None):
    """Console sink on stderr, plus a rotating file sink when LOG_FILE is set"""
    level = (level or settings.log_level).upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )
