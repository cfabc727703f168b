# --- Embeddings ---

EMBEDDING_DIMENSIONS = 1536
EMBEDDING_MAX_LENGTH = 8000  # chars, roughly 2k tokens
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

# Embedding models (OpenAI): model -> dimension
EMBEDDING_MODELS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


# --- Embedding API ---

REQUEST_TIMEOUT = 30.0  # seconds per embedding request
MAX_RETRIES = 3  # total attempts, including the first
BASE_DELAY_MS = 1000  # doubles after every failed attempt
DEFAULT_CONCURRENCY = 10  # embeddings in flight per batch chunk


# --- Search ---

SIMILARITY_THRESHOLD = 0.3
MAX_SEARCH_RESULTS = 20
MAX_SEARCH_RESULTS_LIMIT = 100

QUERY_MIN_LENGTH = 3
QUERY_MAX_LENGTH = 500


# --- Display ---

TITLE_TRUNCATE = 40
SNIPPET_TRUNCATE = 120
